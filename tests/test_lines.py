import pytest

from asmcore.lines import (
    LineKind,
    classify_line,
    evaluate_expression,
    is_suppressed,
    line_range,
    parse_number,
    split_operands,
    strip_comment,
)


@pytest.mark.parametrize(
    "raw, kind",
    [
        ("", LineKind.BLANK),
        ("   ", LineKind.BLANK),
        ("; just a comment", LineKind.COMMENT),
        ("loop:", LineKind.LABEL),
        ("MAX EQU 100", LineKind.CONSTANT),
        ("MAX: equ 100", LineKind.CONSTANT),
        ("EQU 5", LineKind.CONSTANT),
        (".data", LineKind.SECTION),
        (".TEXT", LineKind.SECTION),
        ("DB 1, 2", LineKind.DATA),
        ("msg: dw 5", LineKind.DATA),
        ("ORG 0x1000", LineKind.ORIGIN),
        ("mov eax, 1", LineKind.INSTRUCTION),
        ("start: MOV EAX, 1 ; go", LineKind.INSTRUCTION),
    ],
)
def test_classify_line_kinds(raw, kind):
    assert classify_line(raw).kind == kind


def test_label_with_instruction_keeps_both_parts():
    line = classify_line("  loop: add eax, [ebx+4] ; step")
    assert line.label == "loop"
    assert line.keyword == "ADD"
    assert line.operands == ["eax", "[ebx+4]"]


def test_malformed_equ_has_no_name():
    line = classify_line("EQU 5")
    assert line.kind == LineKind.CONSTANT
    assert line.name is None


def test_constant_line_exposes_name_and_value():
    line = classify_line("GRID_SIZE EQU 0x10 ; size")
    assert line.name == "GRID_SIZE"
    assert line.value_text == "0x10"


def test_comment_marker_inside_quotes_is_kept():
    assert strip_comment("DB ';', 1 ; real comment") == "DB ';', 1 "
    assert classify_line("DB ';', 1").operands == ["';'", "1"]


def test_split_operands_respects_brackets_and_quotes():
    assert split_operands("[ebx, 4], 'a,b', 3") == ["[ebx, 4]", "'a,b'", "3"]
    assert split_operands("") == []


@pytest.mark.parametrize(
    "text, value",
    [("42", 42), ("0x1F", 31), ("0b101", 5), ("-7", -7), ("-0x10", -16), ("abc", None), ("0x", None)],
)
def test_parse_number(text, value):
    assert parse_number(text) == value


def test_evaluate_expression_handles_chars_and_names():
    names = {"BASE": 0xF000, "GRID": 16}
    assert evaluate_expression("'A'") == 65
    assert evaluate_expression("BASE + 2", names.get) == 0xF002
    assert evaluate_expression("GRID - 1 + 'a'", names.get) == 15 + 97
    assert evaluate_expression("BASE +", names.get) is None
    assert evaluate_expression("UNKNOWN", names.get) is None
    assert evaluate_expression("1 2") is None


def test_suppression_markers():
    lines = [
        "HLT",
        "MOV EAX, 1 ; asm-ignore",
        "; asm-disable-next-line",
        "MOV EBX, 2",
        "MOV ECX, 3",
    ]
    assert is_suppressed(lines, 1)
    assert is_suppressed(lines, 3)
    assert not is_suppressed(lines, 4)
    assert not is_suppressed(lines, 0)


def test_line_range_skips_indentation():
    rng = line_range(["    MOV EAX, 1   "], 0)
    assert (rng.start_line, rng.start_column, rng.end_line, rng.end_column) == (0, 4, 0, 14)
