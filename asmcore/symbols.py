from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from asmcore.lines import LineKind, classify_line, line_range
from asmcore.model import Diagnostic, Severity


SOURCE = "asm-labels"


@dataclass
class SymbolTable:
    labels: Dict[str, List[int]] = field(default_factory=dict)
    constants: Dict[str, List[int]] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def is_known(self, name: str) -> bool:
        return name in self.labels or name in self.constants


def _others(occurrences: List[int], current: int) -> str:
    return ", ".join(str(line + 1) for line in occurrences if line != current)


def collect_symbols(lines: Sequence[str]) -> SymbolTable:
    labels: Dict[str, List[int]] = {}
    constants: Dict[str, List[int]] = {}

    for index, raw in enumerate(lines):
        line = classify_line(raw)
        if line.kind == LineKind.CONSTANT:
            if line.name:
                constants.setdefault(line.name, []).append(index)
            continue
        if line.label:
            labels.setdefault(line.label, []).append(index)

    diagnostics: List[Diagnostic] = []
    for name, occurrences in labels.items():
        if len(occurrences) < 2:
            continue
        for index in occurrences:
            diagnostics.append(
                Diagnostic(
                    severity=Severity.ERROR,
                    range=line_range(lines, index),
                    message=f"Duplicate label '{name}' (also defined on line {_others(occurrences, index)})",
                    source=SOURCE,
                )
            )
    for name, occurrences in constants.items():
        if len(occurrences) < 2:
            continue
        for index in occurrences:
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    range=line_range(lines, index),
                    message=(
                        f"Constant '{name}' is defined more than once "
                        f"(also defined on line {_others(occurrences, index)}); each use sees the most recent definition"
                    ),
                    source=SOURCE,
                )
            )
    return SymbolTable(labels=labels, constants=constants, diagnostics=diagnostics)
