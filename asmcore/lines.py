"""Line classification shared by the parser and every analyzer pass.

Each source line maps to exactly one ``LineKind``. The parser and the
analyzer passes only differ in how strictly they treat a line's shape,
never in what the line is.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, List, Optional, Sequence

from asmcore.model import Range


COMMENT_MARKER = ";"
SECTION_KEYWORDS = {".TEXT": "code", ".DATA": "data"}
DATA_DIRECTIVES = {"DB": 1, "DW": 2, "DD": 4}
ORIGIN_DIRECTIVE = "ORG"

CONSTANT_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*):?\s+EQU\s+(.+)$", re.IGNORECASE)
EQU_WORD_RE = re.compile(r"\bEQU\b", re.IGNORECASE)
LABEL_RE = re.compile(r"^([A-Za-z_.$@][A-Za-z0-9_.$@]*)\s*:")
QUOTED_RE = re.compile(r"'[^']*'|\"[^\"]*\"")
HEX_RE = re.compile(r"0[xX][0-9A-Fa-f]+")
BIN_RE = re.compile(r"0[bB][01]+")
DEC_RE = re.compile(r"[0-9]+")
EXPR_TOKEN_RE = re.compile(r"\s*('[^']*'|\"[^\"]*\"|[+-]|[^\s+-]+)")
IGNORE_RE = re.compile(r";\s*asm-ignore\b")
DISABLE_NEXT_LINE_RE = re.compile(r";\s*asm-disable-next-line\b")


class LineKind(Enum):
    BLANK = "blank"
    COMMENT = "comment"
    LABEL = "label"
    CONSTANT = "constant"
    SECTION = "section"
    DATA = "data"
    ORIGIN = "origin"
    INSTRUCTION = "instruction"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    body: str
    label: Optional[str] = None
    keyword: str = ""
    rest: str = ""
    name: Optional[str] = None
    value_text: Optional[str] = None
    section: Optional[str] = None

    @property
    def operands(self) -> List[str]:
        return split_operands(self.rest)


def strip_comment(line: str) -> str:
    quote: str | None = None
    for index, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == COMMENT_MARKER:
            return line[:index]
    return line


@lru_cache(maxsize=8192)
def classify_line(raw: str) -> ClassifiedLine:
    body = strip_comment(raw).strip()
    if not body:
        kind = LineKind.COMMENT if raw.strip().startswith(COMMENT_MARKER) else LineKind.BLANK
        return ClassifiedLine(kind=kind, body=body)

    match = CONSTANT_RE.match(body)
    if match:
        return ClassifiedLine(
            kind=LineKind.CONSTANT,
            body=body,
            name=match.group(1),
            value_text=match.group(2).strip(),
        )
    if EQU_WORD_RE.search(QUOTED_RE.sub("", body)):
        return ClassifiedLine(kind=LineKind.CONSTANT, body=body)

    upper = body.upper()
    if upper in SECTION_KEYWORDS:
        return ClassifiedLine(
            kind=LineKind.SECTION,
            body=body,
            keyword=upper,
            section=SECTION_KEYWORDS[upper],
        )

    label = None
    remainder = body
    match = LABEL_RE.match(body)
    if match:
        label = match.group(1)
        remainder = body[match.end():].strip()
        if not remainder:
            return ClassifiedLine(kind=LineKind.LABEL, body=body, label=label)

    parts = remainder.split(None, 1)
    keyword = parts[0].upper()
    rest = parts[1].strip() if len(parts) > 1 else ""
    if keyword in DATA_DIRECTIVES:
        kind = LineKind.DATA
    elif keyword == ORIGIN_DIRECTIVE:
        kind = LineKind.ORIGIN
    else:
        kind = LineKind.INSTRUCTION
    return ClassifiedLine(kind=kind, body=body, label=label, keyword=keyword, rest=rest)


def classify_lines(lines: Sequence[str]) -> List[ClassifiedLine]:
    return [classify_line(line) for line in lines]


def split_operands(text: str) -> List[str]:
    items: List[str] = []
    current: List[str] = []
    depth = 0
    quote: str | None = None
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            current.append(ch)
            continue
        if ch in ("[", "("):
            depth += 1
        elif ch in ("]", ")"):
            if depth > 0:
                depth -= 1
        elif ch == "," and depth == 0:
            item = "".join(current).strip()
            if item:
                items.append(item)
            current = []
            continue
        current.append(ch)
    item = "".join(current).strip()
    if item:
        items.append(item)
    return items


def parse_number(text: str) -> Optional[int]:
    raw = text.strip()
    negative = raw.startswith("-")
    digits = raw[1:].strip() if negative else raw
    if HEX_RE.fullmatch(digits):
        value = int(digits[2:], 16)
    elif BIN_RE.fullmatch(digits):
        value = int(digits[2:], 2)
    elif DEC_RE.fullmatch(digits):
        value = int(digits, 10)
    else:
        return None
    return -value if negative else value


def is_string_literal(text: str) -> bool:
    if len(text) < 2 or text[0] not in ("'", '"') or text[0] != text[-1]:
        return False
    return text[0] not in text[1:-1]


def parse_char_literal(text: str) -> Optional[int]:
    if is_string_literal(text) and len(text) == 3:
        return ord(text[1])
    return None


def evaluate_expression(text: str, resolve: Callable[[str], Optional[int]] | None = None) -> Optional[int]:
    tokens = EXPR_TOKEN_RE.findall(text)
    if not tokens or "".join(tokens).replace(" ", "") != "".join(text.split()):
        return None
    total = 0
    sign = 1
    expect_term = True
    for token in tokens:
        if token in ("+", "-"):
            if expect_term:
                if token == "-":
                    sign = -sign
            else:
                sign = -1 if token == "-" else 1
                expect_term = True
            continue
        if not expect_term:
            return None
        value = parse_number(token)
        if value is None:
            value = parse_char_literal(token)
        if value is None and resolve is not None:
            value = resolve(token)
        if value is None:
            return None
        total += sign * value
        sign = 1
        expect_term = False
    if expect_term:
        return None
    return total


def is_suppressed(lines: Sequence[str], index: int) -> bool:
    if IGNORE_RE.search(lines[index]):
        return True
    return index > 0 and bool(DISABLE_NEXT_LINE_RE.search(lines[index - 1]))


def _indent(text: str) -> int:
    return len(text) - len(text.lstrip())


def line_range(lines: Sequence[str], index: int) -> Range:
    text = lines[index]
    if not text.strip():
        return Range(index, 0, index, 0)
    return Range(index, _indent(text), index, len(text.rstrip()))


def span_range(lines: Sequence[str], start: int, end: int) -> Range:
    start_text = lines[start]
    start_column = _indent(start_text) if start_text.strip() else 0
    return Range(start, start_column, end, len(lines[end].rstrip()))
