from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from asmcore.mnemonics import MnemonicSpec, MnemonicTable


WORD_CHAR_RE = re.compile(r"[A-Za-z0-9_]")


@dataclass(frozen=True)
class CompletionItem:
    label: str
    kind: str  # keyword, variable
    detail: str
    documentation: str


def word_range_at(line: str, column: int) -> Optional[Tuple[int, int]]:
    start = min(max(column, 0), len(line))
    end = start
    while start > 0 and WORD_CHAR_RE.match(line[start - 1]):
        start -= 1
    while end < len(line) and WORD_CHAR_RE.match(line[end]):
        end += 1
    if start == end:
        return None
    return start, end


def word_at(line: str, column: int) -> Optional[str]:
    span = word_range_at(line, column)
    if span is None:
        return None
    return line[span[0]:span[1]]


def instruction_markdown(spec: MnemonicSpec) -> str:
    flags = ", ".join(spec.flags) if spec.flags else "None"
    parts = [
        f"**{spec.mnemonic}** - {spec.summary}",
        f"**Syntax:** `{spec.syntax}`",
        f"**Cycles:** {spec.cycles}",
        f"**Flags affected:** {flags}",
    ]
    if spec.example:
        parts.append(f"**Example:**\n```asm\n{spec.example}\n```")
    return "\n\n".join(parts)


def hover_markdown(table: MnemonicTable, word: str) -> Optional[str]:
    upper = word.upper()
    spec = table.get(upper)
    if spec is not None:
        return instruction_markdown(spec)
    for register in table.registers:
        if register.name == upper:
            return f"**{register.name}** - {register.description}"
    for flag in table.flags:
        if flag.name == upper:
            return f"**{flag.name} Flag** - {flag.description}"
    return None


def hover_at(table: MnemonicTable, line: str, column: int) -> Optional[str]:
    word = word_at(line, column)
    if word is None:
        return None
    return hover_markdown(table, word)


def completion_items(table: MnemonicTable) -> List[CompletionItem]:
    items = [
        CompletionItem(
            label=spec.mnemonic,
            kind="keyword",
            detail=spec.summary,
            documentation=instruction_markdown(spec),
        )
        for spec in table.instructions.values()
    ]
    items.extend(
        CompletionItem(label=reg.name, kind="variable", detail=reg.description, documentation=reg.description)
        for reg in table.registers
    )
    return items
