from __future__ import annotations

import re
from typing import List, Tuple

from asmcore.model import Program


LCD_BASE = 0xF000
LCD_END = 0xFFFF
SIZE_NAME_HINTS = ("GRID", "LCD_W", "LCD_H", "SCREEN", "DISPLAY_SIZE")
DEFAULT_LCD_SIZE = (8, 8)

HEX_LCD_RE = re.compile(r"0X(F[0-9A-F]{3})\b")
DECIMAL_RE = re.compile(r"\b(\d+)\b")


def detect_lcd_dimensions(program: Program) -> Tuple[int, int]:
    """Guess the display size a program expects from its constants and operands.

    Constants win when both a display base address and a size-like name are
    present; otherwise the largest memory-mapped display address used by an
    operand decides between 16x16 and 64x64. Programs that never touch the
    display get the 8x8 default.
    """
    has_base = False
    grid_size = 0
    for name, value in program.constants.items():
        upper = name.upper()
        if LCD_BASE <= value <= LCD_END:
            has_base = True
        if any(hint in upper for hint in SIZE_NAME_HINTS):
            grid_size = max(grid_size, value)
    if has_base and grid_size > 0:
        return grid_size, grid_size

    max_address = 0
    found = False
    for instr in program.instructions:
        for operand in instr.operands:
            upper = operand.upper()
            for match in HEX_LCD_RE.finditer(upper):
                max_address = max(max_address, int(match.group(1), 16))
                found = True
            for match in DECIMAL_RE.finditer(upper):
                if LCD_BASE <= int(match.group(1)) <= LCD_END:
                    max_address = max(max_address, int(match.group(1)))
                    found = True

    if not found:
        return DEFAULT_LCD_SIZE
    if max_address - LCD_BASE >= 256:
        return 64, 64
    return 16, 16


def executable_lines(program: Program) -> List[int]:
    return [instr.line for instr in program.instructions]


def instruction_index_for_line(program: Program, line: int) -> int:
    for index, instr in enumerate(program.instructions):
        if instr.line == line:
            return index
    return -1
