from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from asmcore.lines import (
    DATA_DIRECTIVES,
    LineKind,
    classify_line,
    evaluate_expression,
    is_string_literal,
    split_operands,
)
from asmcore.model import DataSegment, DataSegmentItem, Instruction, Program


logger = logging.getLogger(__name__)

DEFAULT_DATA_ORIGIN = 0x2000
DEFAULT_CODE_ORIGIN = 0

SUBSTITUTION_RE = re.compile(r"'[^']*'|\"[^\"]*\"|(?<![0-9A-Za-z_.$@])[A-Za-z_.$@][A-Za-z0-9_.$@]*")


class ParseError(Exception):
    def __init__(self, message: str, line_no: int, text: str) -> None:
        super().__init__(message)
        self.message = message
        self.line_no = line_no
        self.text = text


def substitute_constants(text: str, constants: Dict[str, int]) -> str:
    if not constants:
        return text

    def _replace(match: re.Match) -> str:
        token = match.group(0)
        value = constants.get(token)
        return str(value) if value is not None else token

    return SUBSTITUTION_RE.sub(_replace, text)


def _data_values(text: str, labels: Dict[str, int], line_no: int, directive: str) -> List[int]:
    values: List[int] = []
    for item in split_operands(text):
        if is_string_literal(item):
            values.extend(ord(ch) for ch in item[1:-1])
            continue
        value = evaluate_expression(item, labels.get)
        if value is None:
            logger.warning("Line %d: invalid %s value %r, using 0", line_no, directive, item)
            value = 0
        values.append(value)
    return values


def parse_assembly(text: str) -> Program:
    instructions: List[Instruction] = []
    labels: Dict[str, int] = {}
    constants: Dict[str, int] = {}
    items: List[DataSegmentItem] = []
    section = "code"
    data_addr = DEFAULT_DATA_ORIGIN
    code_start = DEFAULT_CODE_ORIGIN
    pending_label: Optional[str] = None

    for idx, raw_line in enumerate(text.splitlines(), start=1):
        line = classify_line(raw_line)
        kind = line.kind
        if kind in (LineKind.BLANK, LineKind.COMMENT):
            continue

        if kind == LineKind.CONSTANT:
            if line.name is None or line.value_text is None:
                logger.debug("Line %d: skipping malformed EQU: %s", idx, line.body)
                continue
            value = evaluate_expression(substitute_constants(line.value_text, constants))
            if value is None:
                logger.debug("Line %d: EQU value for %s is not a number: %s", idx, line.name, line.value_text)
                continue
            constants[line.name] = value
            continue

        if kind == LineKind.SECTION:
            section = line.section or section
            continue

        if line.label:
            if section == "data":
                pending_label = line.label
                labels[line.label] = data_addr
            else:
                labels[line.label] = len(instructions)
        if kind == LineKind.LABEL:
            continue

        if kind == LineKind.ORIGIN:
            origin = evaluate_expression(substitute_constants(line.rest, constants))
            if origin is None:
                logger.debug("Line %d: ignoring ORG without a numeric address: %s", idx, line.rest)
            elif section == "data":
                data_addr = origin
            else:
                code_start = origin
            continue

        if section == "data":
            if kind != LineKind.DATA:
                if line.label:
                    continue
                raise ParseError(
                    f"Expected data directive (DB, DW, DD) in .data section, got '{line.keyword}'",
                    idx,
                    raw_line,
                )
            size = DATA_DIRECTIVES[line.keyword]
            values = _data_values(substitute_constants(line.rest, constants), labels, idx, line.keyword)
            item = DataSegmentItem(address=data_addr, size=size, values=tuple(values), label=pending_label)
            if pending_label is not None:
                labels[pending_label] = data_addr
                pending_label = None
            items.append(item)
            data_addr = item.end_address
            continue

        if kind == LineKind.DATA:
            raise ParseError(
                f"Data directive '{line.keyword}' is not allowed in .text section",
                idx,
                raw_line,
            )

        operands = split_operands(substitute_constants(line.rest, constants))
        instructions.append(
            Instruction(
                line=idx,
                mnemonic=line.keyword,
                operands=tuple(operands),
                raw=raw_line.strip(),
            )
        )

    logger.debug(
        "Parsed %d instructions, %d labels, %d constants, %d data items",
        len(instructions),
        len(labels),
        len(constants),
        len(items),
    )
    return Program(
        instructions=instructions,
        labels=labels,
        constants=constants,
        data_segment=DataSegment(items=items),
        code_start_address=code_start,
    )
