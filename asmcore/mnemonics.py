from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple


logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS = {1}


@dataclass(frozen=True)
class OperandArity:
    minimum: int
    maximum: int

    def accepts(self, count: int) -> bool:
        return self.minimum <= count <= self.maximum

    def describe_mismatch(self, mnemonic: str, count: int) -> Optional[str]:
        if self.accepts(count):
            return None
        if self.minimum == self.maximum == 0:
            return f"{mnemonic} does not take operands, found {count}"
        if self.minimum == self.maximum:
            noun = "operand" if self.minimum == 1 else "operands"
            return f"{mnemonic} requires exactly {self.minimum} {noun}, found {count}"
        if self.maximum - self.minimum == 1:
            return f"{mnemonic} requires {self.minimum} or {self.maximum} operands, found {count}"
        return f"{mnemonic} requires {self.minimum} to {self.maximum} operands, found {count}"


@dataclass(frozen=True)
class MnemonicSpec:
    mnemonic: str
    summary: str
    syntax: str
    arity: OperandArity
    branch: bool = False
    flags: Tuple[str, ...] = ()
    example: str = ""
    cycles: int = 1


@dataclass(frozen=True)
class SymbolDoc:
    name: str
    description: str


@dataclass
class MnemonicTable:
    schema_version: int
    name: str
    description: str
    registers: List[SymbolDoc]
    flags: List[SymbolDoc]
    instructions: Dict[str, MnemonicSpec] = field(default_factory=dict)

    def get(self, mnemonic: str) -> Optional[MnemonicSpec]:
        return self.instructions.get(mnemonic.upper())

    def __contains__(self, mnemonic: str) -> bool:
        return mnemonic.upper() in self.instructions

    @property
    def mnemonics(self) -> List[str]:
        return list(self.instructions)

    @property
    def register_names(self) -> List[str]:
        return [reg.name for reg in self.registers]

    def is_register(self, name: str) -> bool:
        upper = name.upper()
        return any(reg.name == upper for reg in self.registers)

    def is_branch(self, mnemonic: str) -> bool:
        spec = self.get(mnemonic)
        return bool(spec and spec.branch)


class MnemonicTableError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def default_table_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "default_mnemonics.json"


def _load_json(path: Path) -> dict:
    if not path.exists():
        raise MnemonicTableError(f"Mnemonic table not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise MnemonicTableError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise MnemonicTableError(f"Failed to read mnemonic table: {exc}") from exc


def _validate_docs(data: dict, key: str, required: bool) -> List[SymbolDoc]:
    entries = data.get(key)
    if entries is None and not required:
        return []
    if not isinstance(entries, list) or (required and not entries):
        raise MnemonicTableError(f"{key} must be a non-empty array.")
    docs: List[SymbolDoc] = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise MnemonicTableError(f"{key} entries must be objects.")
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            raise MnemonicTableError(f"{key} entry is missing name.")
        description = entry.get("description") or ""
        if not isinstance(description, str):
            raise MnemonicTableError(f"{key} entry {name} description must be a string.")
        upper = name.strip().upper()
        if upper in seen:
            raise MnemonicTableError(f"Duplicate name in {key}: {upper}")
        seen.add(upper)
        docs.append(SymbolDoc(name=upper, description=description.strip()))
    return docs


def _validate_arity(mnemonic: str, raw) -> OperandArity:
    if isinstance(raw, bool):
        raise MnemonicTableError(f"Instruction {mnemonic} operands must be an integer or a min/max object.")
    if isinstance(raw, int):
        if raw not in (0, 1, 2):
            raise MnemonicTableError(f"Instruction {mnemonic} operands must be 0, 1 or 2.")
        return OperandArity(raw, raw)
    if isinstance(raw, dict):
        minimum = raw.get("min")
        maximum = raw.get("max")
        if not isinstance(minimum, int) or not isinstance(maximum, int):
            raise MnemonicTableError(f"Instruction {mnemonic} operand range needs integer min and max.")
        if minimum < 0 or maximum < minimum:
            raise MnemonicTableError(f"Instruction {mnemonic} operand range is invalid: {minimum}..{maximum}")
        return OperandArity(minimum, maximum)
    raise MnemonicTableError(f"Instruction {mnemonic} operands must be an integer or a min/max object.")


def _validate_instruction(entry: dict, index: int, path: Path) -> MnemonicSpec:
    if not isinstance(entry, dict):
        raise MnemonicTableError(f"Instruction #{index} must be an object in {path}.")
    mnemonic = entry.get("mnemonic")
    if not isinstance(mnemonic, str) or not mnemonic.strip():
        raise MnemonicTableError(f"Instruction #{index} is missing mnemonic.")
    mnemonic = mnemonic.strip().upper()
    summary = entry.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise MnemonicTableError(f"Instruction {mnemonic} is missing summary.")
    syntax = entry.get("syntax") or mnemonic
    if not isinstance(syntax, str):
        raise MnemonicTableError(f"Instruction {mnemonic} syntax must be a string.")
    if "operands" not in entry:
        raise MnemonicTableError(f"Instruction {mnemonic} is missing operands.")
    arity = _validate_arity(mnemonic, entry["operands"])
    branch = entry.get("branch", False)
    if not isinstance(branch, bool):
        raise MnemonicTableError(f"Instruction {mnemonic} branch must be true or false.")
    if branch and not arity.accepts(1):
        raise MnemonicTableError(f"Branch instruction {mnemonic} must accept a single target operand.")
    flags = entry.get("flags") or []
    if not isinstance(flags, list) or any(not isinstance(flag, str) for flag in flags):
        raise MnemonicTableError(f"Instruction {mnemonic} flags must be an array of strings.")
    example = entry.get("example") or ""
    if not isinstance(example, str):
        raise MnemonicTableError(f"Instruction {mnemonic} example must be a string.")
    cycles = entry.get("cycles", 1)
    if not isinstance(cycles, int) or isinstance(cycles, bool) or cycles < 1:
        raise MnemonicTableError(f"Instruction {mnemonic} cycles must be a positive integer.")
    return MnemonicSpec(
        mnemonic=mnemonic,
        summary=summary.strip(),
        syntax=syntax.strip(),
        arity=arity,
        branch=branch,
        flags=tuple(flags),
        example=example,
        cycles=cycles,
    )


def validate_table(data: dict, path: Path) -> MnemonicTable:
    if not isinstance(data, dict):
        raise MnemonicTableError("Mnemonic table must be a JSON object.")
    schema_version = data.get("schema_version")
    if not isinstance(schema_version, int):
        raise MnemonicTableError("schema_version must be an integer.")
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise MnemonicTableError(f"Unsupported schema_version: {schema_version}")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise MnemonicTableError("name is required and must be a string.")
    description = data.get("description") or ""
    if not isinstance(description, str):
        raise MnemonicTableError("description must be a string if provided.")
    registers = _validate_docs(data, "registers", required=True)
    flags = _validate_docs(data, "flags", required=False)
    instructions_data = data.get("instructions")
    if not isinstance(instructions_data, list) or not instructions_data:
        raise MnemonicTableError("instructions must be a non-empty array.")
    instructions: Dict[str, MnemonicSpec] = {}
    for idx, entry in enumerate(instructions_data, start=1):
        spec = _validate_instruction(entry, idx, path)
        if spec.mnemonic in instructions:
            raise MnemonicTableError(f"Duplicate mnemonic in table: {spec.mnemonic}")
        instructions[spec.mnemonic] = spec
    return MnemonicTable(
        schema_version=schema_version,
        name=name.strip(),
        description=description.strip(),
        registers=registers,
        flags=flags,
        instructions=instructions,
    )


def load_table(path: Path | str) -> MnemonicTable:
    resolved = Path(path).expanduser().resolve()
    table = validate_table(_load_json(resolved), resolved)
    logger.info("Loaded mnemonic table %r with %d instructions from %s", table.name, len(table.instructions), resolved)
    return table


@lru_cache(maxsize=1)
def load_default_table() -> MnemonicTable:
    return load_table(default_table_path())


class MnemonicTableManager:
    def __init__(self, default_path: Optional[Path] = None) -> None:
        self.default_path = default_path or default_table_path()
        self.active_table: Optional[MnemonicTable] = None
        self.active_path: Optional[Path] = None
        self._callbacks: List[Callable[[MnemonicTable], None]] = []
        self.load_default()

    def on_change(self, callback: Callable[[MnemonicTable], None]) -> None:
        self._callbacks.append(callback)

    def _emit_change(self) -> None:
        if not self.active_table:
            return
        for callback in list(self._callbacks):
            callback(self.active_table)

    def list_bundled(self) -> List[Path]:
        if not self.default_path.exists():
            return []
        return sorted(self.default_path.parent.glob("*.json"))

    def load_default(self) -> MnemonicTable:
        return self.load_from_path(self.default_path)

    def load_from_path(self, path: Path | str) -> MnemonicTable:
        resolved = Path(path).expanduser().resolve()
        table = load_table(resolved)
        self.active_table = table
        self.active_path = resolved
        self._emit_change()
        return table

    def reload(self) -> MnemonicTable:
        if self.active_path:
            return self.load_from_path(self.active_path)
        return self.load_default()

    def current(self) -> MnemonicTable:
        if self.active_table is None:
            return self.load_default()
        return self.active_table


mnemonic_table_manager = MnemonicTableManager()
