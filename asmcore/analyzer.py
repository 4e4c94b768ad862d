from __future__ import annotations

import logging
from typing import List, Optional

from asmcore.control_flow import validate_control_flow
from asmcore.conventions import validate_calling_conventions
from asmcore.mnemonics import MnemonicTable, load_default_table
from asmcore.model import Diagnostic, Severity
from asmcore.symbols import collect_symbols
from asmcore.validator import validate_instructions


logger = logging.getLogger(__name__)


def analyze(text: str, table: Optional[MnemonicTable] = None) -> List[Diagnostic]:
    table = table or load_default_table()
    lines = text.splitlines()

    symbols = collect_symbols(lines)
    instruction_diags = validate_instructions(lines, table, symbols)
    flow_diags = validate_control_flow(lines)
    convention_diags = validate_calling_conventions(lines, symbols.labels)

    diagnostics = [*symbols.diagnostics, *instruction_diags, *flow_diags, *convention_diags]
    logger.debug(
        "Analyzed %d lines: %d label, %d instruction, %d control-flow, %d convention diagnostics",
        len(lines),
        len(symbols.diagnostics),
        len(instruction_diags),
        len(flow_diags),
        len(convention_diags),
    )
    return diagnostics


def has_errors(diagnostics: List[Diagnostic]) -> bool:
    return any(diag.severity == Severity.ERROR for diag in diagnostics)
