"""Heuristic calling-convention checks.

Function boundaries are inferred, not known, so nothing emitted here is
ever more severe than a warning.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from asmcore.lines import ClassifiedLine, LineKind, classify_lines, line_range, span_range
from asmcore.model import Diagnostic, Severity


SOURCE = "asm-convention"

CALLEE_SAVED_REGISTERS = ("EBX", "ESI", "EDI", "EBP")
ENTRY_POINT_NAMES = {"main", "start", "_start"}
CONTROL_FLOW_INSTRUCTIONS = {"JMP", "JE", "JZ", "JNE", "JNZ", "RET", "HLT"}
MODIFYING_INSTRUCTIONS = {
    "ADD", "SUB", "INC", "DEC", "AND", "OR", "XOR", "SHL", "SHR", "MOV",
    "MUL", "DIV", "IMUL", "IDIV", "MOD", "NEG", "NOT", "RAND", "RCL", "RCR",
    "XADD", "BSF", "BSR", "BSWAP", "CMOVE", "CMOVZ", "CMOVNE", "CMOVNZ",
    "CMOVL", "CMOVLE", "CMOVG", "CMOVGE", "CMOVA", "CMOVAE", "CMOVB",
    "CMOVBE", "CMOVS", "CMOVNS", "SAHF",
}
PARAMETER_LOOKAHEAD = 10


@dataclass
class FunctionInfo:
    name: str
    start_line: int
    end_line: int = -1
    prologue_push_line: int = -1
    prologue_mov_line: int = -1
    epilogue_pop_line: int = -1
    push_count: int = 0
    pop_count: int = 0
    call_lines: List[int] = field(default_factory=list)
    ret_lines: List[int] = field(default_factory=list)
    modified_registers: List[str] = field(default_factory=list)
    saved_registers: List[str] = field(default_factory=list)

    @property
    def is_entry_point(self) -> bool:
        return self.name.lower() in ENTRY_POINT_NAMES

    def record(self, line: ClassifiedLine, index: int, first_instruction: bool) -> None:
        mnemonic = line.keyword
        operands = [op.upper() for op in line.operands]
        dest = operands[0] if operands else ""
        if mnemonic == "PUSH":
            self.push_count += 1
            if dest == "EBP" and first_instruction:
                self.prologue_push_line = index
            if dest in CALLEE_SAVED_REGISTERS and dest not in self.saved_registers:
                self.saved_registers.append(dest)
        elif mnemonic == "POP":
            self.pop_count += 1
            if dest == "EBP":
                self.epilogue_pop_line = index
        elif mnemonic == "MOV" and len(operands) >= 2:
            if dest == "EBP" and operands[1] == "ESP" and self.prologue_push_line != -1:
                self.prologue_mov_line = index
            self._mark_modified(dest)
        elif mnemonic == "CALL":
            self.call_lines.append(index)
        elif mnemonic == "RET":
            self.ret_lines.append(index)
        elif mnemonic in MODIFYING_INSTRUCTIONS and operands:
            self._mark_modified(dest)

    def _mark_modified(self, register: str) -> None:
        if register in CALLEE_SAVED_REGISTERS and register != "EBP" and register not in self.modified_registers:
            self.modified_registers.append(register)

    def unsaved_registers(self) -> List[str]:
        return [reg for reg in self.modified_registers if reg not in self.saved_registers]


def identify_function_labels(classified: Sequence[ClassifiedLine], labels: Iterable[str]) -> set[str]:
    known = set(labels)
    function_labels: set[str] = set()
    for line in classified:
        if line.label and line.label.lower() in ENTRY_POINT_NAMES:
            function_labels.add(line.label)
        if line.kind == LineKind.INSTRUCTION and line.keyword == "CALL":
            operands = line.operands
            if operands and operands[0] in known:
                function_labels.add(operands[0])
    return function_labels


def collect_functions(classified: Sequence[ClassifiedLine], function_labels: set[str]) -> List[FunctionInfo]:
    functions: List[FunctionInfo] = []
    current: Optional[FunctionInfo] = None
    first_instruction = True

    for index, line in enumerate(classified):
        if line.label and line.label in function_labels:
            if current is not None:
                current.end_line = index - 1
                functions.append(current)
            current = FunctionInfo(name=line.label, start_line=index)
            first_instruction = True
        if current is None or line.kind != LineKind.INSTRUCTION:
            continue
        current.record(line, index, first_instruction)
        first_instruction = False

    if current is not None:
        current.end_line = len(classified) - 1
        functions.append(current)
    return functions


def _diagnostic(severity: Severity, range_, message: str) -> Diagnostic:
    return Diagnostic(severity=severity, range=range_, message=message, source=SOURCE)


def check_function_bodies(functions: Sequence[FunctionInfo], lines: Sequence[str]) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []
    for func in functions:
        if func.is_entry_point:
            continue
        body = span_range(lines, func.start_line, func.end_line)

        if func.call_lines or func.ret_lines:
            if func.prologue_push_line == -1:
                diagnostics.append(
                    _diagnostic(
                        Severity.INFORMATION,
                        line_range(lines, func.start_line),
                        f"Function '{func.name}' should start with 'PUSH EBP' (standard prologue)",
                    )
                )
            elif func.prologue_mov_line == -1:
                diagnostics.append(
                    _diagnostic(
                        Severity.INFORMATION,
                        line_range(lines, func.prologue_push_line),
                        f"Function '{func.name}' should follow 'PUSH EBP' with 'MOV EBP, ESP' (standard prologue)",
                    )
                )
            if func.prologue_push_line != -1 and func.epilogue_pop_line == -1:
                diagnostics.append(
                    _diagnostic(
                        Severity.WARNING,
                        body,
                        f"Function '{func.name}' has 'PUSH EBP' but missing 'POP EBP' (unbalanced stack)",
                    )
                )

        if func.push_count != func.pop_count:
            diagnostics.append(
                _diagnostic(
                    Severity.WARNING,
                    body,
                    f"Function '{func.name}' has {func.push_count} PUSH but {func.pop_count} POP (unbalanced stack)",
                )
            )

        for register in func.unsaved_registers():
            diagnostics.append(
                _diagnostic(
                    Severity.WARNING,
                    body,
                    f"Function '{func.name}' modifies callee-saved register {register} but doesn't save/restore it",
                )
            )
    return diagnostics


def _next_code_line(classified: Sequence[ClassifiedLine], start: int) -> int:
    index = start
    while index < len(classified) and classified[index].kind in (LineKind.BLANK, LineKind.COMMENT):
        index += 1
    return index


def check_call_sites(classified: Sequence[ClassifiedLine], lines: Sequence[str]) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []
    for index, line in enumerate(classified):
        if line.kind != LineKind.INSTRUCTION:
            continue
        operands = line.operands

        if line.keyword == "CALL" and operands:
            next_index = _next_code_line(classified, index + 1)
            if next_index < len(classified):
                following = classified[next_index]
                next_operands = following.operands
                if (
                    following.kind == LineKind.INSTRUCTION
                    and not following.label
                    and following.keyword == "ADD"
                    and len(next_operands) >= 2
                    and next_operands[0].upper() == "ESP"
                ):
                    diagnostics.append(
                        _diagnostic(
                            Severity.HINT,
                            span_range(lines, index, next_index),
                            f"Call to '{operands[0]}' uses cdecl convention "
                            f"(caller cleans stack with ADD ESP, {next_operands[1]})",
                        )
                    )

        if line.keyword == "PUSH" and operands:
            found_call = False
            for ahead in range(index + 1, min(index + PARAMETER_LOOKAHEAD, len(classified))):
                future = classified[ahead]
                if future.kind in (LineKind.BLANK, LineKind.COMMENT):
                    continue
                if future.kind == LineKind.INSTRUCTION and future.keyword == "CALL":
                    found_call = True
                    break
                if future.label or (future.kind == LineKind.INSTRUCTION and future.keyword in CONTROL_FLOW_INSTRUCTIONS):
                    break
            if found_call:
                diagnostics.append(
                    _diagnostic(
                        Severity.HINT,
                        line_range(lines, index),
                        f"Pushing parameter '{operands[0]}' for upcoming function call (cdecl/stdcall pattern)",
                    )
                )
    return diagnostics


def validate_calling_conventions(lines: Sequence[str], labels: Iterable[str]) -> List[Diagnostic]:
    classified = classify_lines(lines)
    function_labels = identify_function_labels(classified, labels)
    functions = collect_functions(classified, function_labels)
    return check_function_bodies(functions, lines) + check_call_sites(classified, lines)
