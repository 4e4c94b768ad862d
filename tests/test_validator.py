import pytest

from asmcore.model import Severity
from asmcore.symbols import collect_symbols
from asmcore.validator import SOURCE, validate_instructions


def _validate(table, *lines):
    return validate_instructions(list(lines), table, collect_symbols(list(lines)))


def _messages(diags):
    return [d.message for d in diags]


def test_clean_program_has_no_diagnostics(table):
    diags = _validate(
        table,
        "MAX EQU 3",
        ".data",
        "msg: DB 'hi', 0",
        ".text",
        "start: MOV ECX, MAX",
        "loop: DEC ECX",
        "  JNZ loop",
        "  MOV EAX, [msg]",
        "  HLT",
    )
    assert diags == []


def test_missing_operand(table):
    diags = _validate(table, "MOV EAX")
    assert len(diags) == 1
    assert diags[0].severity == Severity.ERROR
    assert diags[0].source == SOURCE
    assert "requires exactly 2 operands, found 1" in diags[0].message


@pytest.mark.parametrize(
    "line, message",
    [
        ("PUSH", "PUSH requires exactly 1 operand, found 0"),
        ("RET 4", "RET does not take operands, found 1"),
        ("IMUL", "IMUL requires 1 to 3 operands, found 0"),
        ("RAND EAX, 1, 2", "RAND requires 1 or 2 operands, found 3"),
    ],
)
def test_arity_messages(table, line, message):
    assert _messages(_validate(table, line)) == [message]


def test_unknown_instruction(table):
    diags = _validate(table, "FOO EAX")
    assert _messages(diags) == ["Unknown instruction 'FOO'"]


def test_mnemonics_are_case_insensitive(table):
    assert _validate(table, "mov eax, ebx", "hlt") == []


def test_invalid_register(table):
    diags = _validate(table, "MOV EXX, 1")
    assert len(diags) == 1
    assert diags[0].message.startswith("Invalid register 'EXX'. Valid registers are: EAX")


def test_register_shaped_symbols_are_not_registers(table):
    assert _validate(table, "ABC EQU 1", "MOV EAX, ABC") == []


@pytest.mark.parametrize("operand", ["0x10", "-5", "[EBX]", "'A'", "123"])
def test_literals_are_not_register_checked(table, operand):
    assert _validate(table, f"MOV EAX, {operand}") == []


def test_undefined_branch_target(table):
    diags = _validate(table, "JMP nowhere")
    assert len(diags) == 1
    assert diags[0].severity == Severity.WARNING
    assert diags[0].message == "Label 'nowhere' is not defined"


def test_register_shaped_branch_target_gets_both_diagnostics(table):
    diags = _validate(table, "main:", "  JMP ABC", "  HLT")
    assert [(d.severity, d.line) for d in diags] == [(Severity.ERROR, 1), (Severity.WARNING, 1)]
    assert diags[0].message.startswith("Invalid register 'ABC'. Valid registers are: EAX")
    assert diags[1].message == "Label 'ABC' is not defined"


def test_branch_to_hex_or_register_is_allowed(table):
    assert _validate(table, "JMP 0x10", "CALL EAX") == []


def test_malformed_equ(table):
    assert _messages(_validate(table, "EQU 5")) == ["Invalid EQU directive format. Expected: NAME EQU value"]


def test_data_directive_outside_data_section(table):
    assert _messages(_validate(table, "DB 1")) == ["Data directive 'DB' is only allowed in the .data section"]


def test_invalid_data_value(table):
    diags = _validate(table, ".data", "DW 1, bogus, 'x'")
    assert _messages(diags) == ["Invalid data value 'bogus' in DW directive"]


def test_data_values_may_use_symbols(table):
    assert _validate(table, "BASE EQU 0xF000", ".data", "a: DB 1", "DD BASE + 4, a") == []


def test_instruction_in_data_section(table):
    diags = _validate(table, ".data", "MOV EAX, 1")
    assert diags[0].severity == Severity.ERROR
    assert diags[0].message == "Expected data directive (DB, DW, DD) in .data section, got 'MOV'"


def test_labelled_instruction_in_data_section_is_a_warning(table):
    diags = _validate(table, ".data", "buf: something", "DB 0")
    assert [d.severity for d in diags] == [Severity.WARNING]
