from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Instruction:
    line: int
    mnemonic: str
    operands: Tuple[str, ...]
    raw: str


@dataclass(frozen=True)
class DataSegmentItem:
    address: int
    size: int  # 1, 2 or 4 bytes
    values: Tuple[int, ...]
    label: Optional[str] = None

    @property
    def end_address(self) -> int:
        return self.address + self.size * len(self.values)


@dataclass
class DataSegment:
    items: List[DataSegmentItem] = field(default_factory=list)

    def to_bytes(self) -> Dict[int, int]:
        memory: Dict[int, int] = {}
        for item in self.items:
            mask = (1 << (8 * item.size)) - 1
            addr = item.address
            for value in item.values:
                for offset, byte in enumerate((value & mask).to_bytes(item.size, "little", signed=False)):
                    memory[addr + offset] = byte
                addr += item.size
        return memory


@dataclass
class Program:
    instructions: List[Instruction]
    labels: Dict[str, int]
    constants: Dict[str, int] = field(default_factory=dict)
    data_segment: DataSegment = field(default_factory=DataSegment)
    code_start_address: int = 0

    def get_label(self, name: str) -> Optional[int]:
        return self.labels.get(name)

    def get_constant(self, name: str) -> Optional[int]:
        return self.constants.get(name)


class Severity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Range:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    range: Range
    message: str
    source: str

    @property
    def line(self) -> int:
        return self.range.start_line

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.label.lower(),
            "range": {
                "start": {"line": self.range.start_line, "character": self.range.start_column},
                "end": {"line": self.range.end_line, "character": self.range.end_column},
            },
            "message": self.message,
            "source": self.source,
        }
