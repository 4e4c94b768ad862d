from __future__ import annotations

from typing import List, Optional, Sequence, Set

from asmcore.lines import ClassifiedLine, LineKind, classify_lines, is_suppressed, line_range
from asmcore.model import Diagnostic, Severity


SOURCE = "asm-flow"
TERMINATING_INSTRUCTIONS = ("HLT", "RET", "JMP")


def _is_instruction(line: ClassifiedLine, *mnemonics: str) -> bool:
    return line.kind == LineKind.INSTRUCTION and line.keyword in mnemonics


def find_function_labels(classified: Sequence[ClassifiedLine]) -> Set[str]:
    """Labels followed by a RET before the next label."""
    function_labels: Set[str] = set()
    current: Optional[str] = None
    for line in classified:
        if line.label:
            current = line.label
        if current and _is_instruction(line, "RET"):
            function_labels.add(current)
    return function_labels


def _ret_inside_function(classified: Sequence[ClassifiedLine], index: int, function_labels: Set[str]) -> bool:
    own_label = classified[index].label
    if own_label:
        return own_label in function_labels
    for j in range(index - 1, -1, -1):
        prev = classified[j]
        if prev.label:
            return prev.label in function_labels
        if _is_instruction(prev, "HLT", "RET"):
            return False
    return False


def validate_control_flow(lines: Sequence[str]) -> List[Diagnostic]:
    classified = classify_lines(lines)
    function_labels = find_function_labels(classified)
    diagnostics: List[Diagnostic] = []
    unreachable_after = -1
    terminator = ""
    section = "code"

    for index, line in enumerate(classified):
        if line.kind == LineKind.SECTION:
            section = line.section or section
            continue
        if line.label:
            unreachable_after = -1
        if line.kind != LineKind.INSTRUCTION or section != "code":
            continue
        mnemonic = line.keyword

        if unreachable_after >= 0 and not is_suppressed(lines, index):
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    range=line_range(lines, index),
                    message=f"Unreachable code: instruction follows {terminator} on line {unreachable_after + 1}",
                    source=SOURCE,
                )
            )

        if mnemonic == "RET" and not _ret_inside_function(classified, index, function_labels):
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    range=line_range(lines, index),
                    message="RET instruction outside of function context (no preceding CALL target)",
                    source=SOURCE,
                )
            )

        if mnemonic in TERMINATING_INSTRUCTIONS:
            unreachable_after = index
            terminator = mnemonic

    return diagnostics
