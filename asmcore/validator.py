from __future__ import annotations

import re
from typing import List, Sequence

from asmcore.lines import LineKind, classify_line, evaluate_expression, is_string_literal, line_range, split_operands
from asmcore.mnemonics import MnemonicTable
from asmcore.model import Diagnostic, Severity
from asmcore.symbols import SymbolTable


SOURCE = "asm-validator"

NON_REGISTER_RE = re.compile(r"^[\[\-'\"]|^0[xXbB]|^\d+$")
REGISTER_SHAPE_RE = re.compile(r"^E?[A-Z]{2,3}$")


def _diagnostic(lines: Sequence[str], index: int, severity: Severity, message: str) -> Diagnostic:
    return Diagnostic(severity=severity, range=line_range(lines, index), message=message, source=SOURCE)


def is_invalid_register(operand: str, table: MnemonicTable, symbols: SymbolTable) -> bool:
    if NON_REGISTER_RE.search(operand):
        return False
    upper = operand.upper()
    return (
        bool(REGISTER_SHAPE_RE.match(upper))
        and not table.is_register(upper)
        and not symbols.is_known(operand)
    )


def is_undefined_target(target: str, table: MnemonicTable, symbols: SymbolTable) -> bool:
    return (
        not target.lower().startswith("0x")
        and not table.is_register(target)
        and not symbols.is_known(target)
    )


def invalid_data_values(text: str, symbols: SymbolTable) -> List[str]:
    def _resolve(name: str):
        return 0 if symbols.is_known(name) else None

    bad: List[str] = []
    for item in split_operands(text):
        if is_string_literal(item):
            continue
        if evaluate_expression(item, _resolve) is None:
            bad.append(item)
    return bad


def validate_instructions(lines: Sequence[str], table: MnemonicTable, symbols: SymbolTable) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []
    section = "code"

    for index, raw in enumerate(lines):
        line = classify_line(raw)
        kind = line.kind

        if kind == LineKind.SECTION:
            section = line.section or section
            continue

        if kind == LineKind.CONSTANT:
            if line.name is None:
                diagnostics.append(
                    _diagnostic(lines, index, Severity.ERROR, "Invalid EQU directive format. Expected: NAME EQU value")
                )
            continue

        if kind == LineKind.DATA:
            if section != "data":
                diagnostics.append(
                    _diagnostic(
                        lines,
                        index,
                        Severity.ERROR,
                        f"Data directive '{line.keyword}' is only allowed in the .data section",
                    )
                )
                continue
            if not line.rest:
                diagnostics.append(
                    _diagnostic(lines, index, Severity.ERROR, f"{line.keyword} directive requires at least one value")
                )
                continue
            for item in invalid_data_values(line.rest, symbols):
                diagnostics.append(
                    _diagnostic(lines, index, Severity.ERROR, f"Invalid data value '{item}' in {line.keyword} directive")
                )
            continue

        if kind != LineKind.INSTRUCTION:
            continue

        if section == "data":
            if line.label:
                diagnostics.append(
                    _diagnostic(
                        lines,
                        index,
                        Severity.WARNING,
                        f"Ignored '{line.keyword}' after data label '{line.label}'; expected DB, DW or DD",
                    )
                )
            else:
                diagnostics.append(
                    _diagnostic(
                        lines,
                        index,
                        Severity.ERROR,
                        f"Expected data directive (DB, DW, DD) in .data section, got '{line.keyword}'",
                    )
                )
            continue

        mnemonic = line.keyword
        spec = table.get(mnemonic)
        if spec is None:
            diagnostics.append(_diagnostic(lines, index, Severity.ERROR, f"Unknown instruction '{mnemonic}'"))
            continue

        operands = line.operands
        arity_error = spec.arity.describe_mismatch(mnemonic, len(operands))
        if arity_error:
            diagnostics.append(_diagnostic(lines, index, Severity.ERROR, arity_error))
            continue

        for operand in operands:
            if is_invalid_register(operand, table, symbols):
                diagnostics.append(
                    _diagnostic(
                        lines,
                        index,
                        Severity.ERROR,
                        f"Invalid register '{operand}'. Valid registers are: {', '.join(table.register_names)}",
                    )
                )

        if spec.branch and operands:
            target = operands[0]
            if is_undefined_target(target, table, symbols):
                diagnostics.append(_diagnostic(lines, index, Severity.WARNING, f"Label '{target}' is not defined"))

    return diagnostics
