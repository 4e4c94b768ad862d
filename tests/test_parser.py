import pytest

from asmcore.parser import DEFAULT_DATA_ORIGIN, ParseError, parse_assembly, substitute_constants


def _parse(*lines):
    return parse_assembly("\n".join(lines))


def test_db_directive_values_and_size():
    program = _parse(".data", "DB 0x48, 0x65, 0x6C")
    items = program.data_segment.items
    assert len(items) == 1
    assert items[0].size == 1
    assert items[0].values == (0x48, 0x65, 0x6C)


def test_db_string_literal_expands_per_character():
    program = _parse(".data", 'message: DB "Hello"')
    item = program.data_segment.items[0]
    assert item.values == (72, 101, 108, 108, 111)
    assert item.label == "message"
    assert program.labels["message"] == DEFAULT_DATA_ORIGIN


def test_dw_string_keeps_word_size():
    item = _parse(".data", 'DW "AB"').data_segment.items[0]
    assert item.size == 2
    assert item.values == (65, 66)


def test_dd_directive():
    item = _parse(".data", "DD 0x12345678").data_segment.items[0]
    assert item.size == 4
    assert item.values == (0x12345678,)


def test_data_items_are_laid_out_consecutively():
    program = _parse(".data", "DB 1", "DW 2", "DD 3")
    assert [item.address for item in program.data_segment.items] == [0x2000, 0x2001, 0x2003]


def test_data_labels_follow_the_cursor():
    program = _parse(".data", "value1: DB 1", "value2: DW 2")
    assert program.labels["value1"] == 0x2000
    assert program.labels["value2"] == 0x2001
    assert [item.label for item in program.data_segment.items] == ["value1", "value2"]


def test_mixed_db_values():
    program = _parse(".data", "DB 0x48, 'e', 108, 0x6C")
    assert program.data_segment.items[0].values == (0x48, 101, 108, 0x6C)


def test_org_moves_data_cursor():
    program = _parse(".data", "ORG 0x3000", "DB 0x42")
    assert program.data_segment.items[0].address == 0x3000


def test_org_in_code_sets_start_address():
    program = _parse(".text", "ORG 0x1000", "MOV EAX, 1")
    assert program.code_start_address == 0x1000
    assert len(program.instructions) == 1


def test_sections_can_be_interleaved():
    program = _parse(".data", "value: DB 0x42", ".text", "MOV EAX, value", ".data", "another: DW 0x1234")
    assert len(program.data_segment.items) == 2
    assert len(program.instructions) == 1
    assert program.labels["value"] == 0x2000
    assert program.labels["another"] == 0x2001
    assert program.instructions[0].operands == ("EAX", "value")


def test_default_section_is_code():
    program = _parse("MOV EAX, 1", "HLT")
    assert len(program.instructions) == 2
    assert program.data_segment.items == []


def test_code_labels_map_to_instruction_index():
    program = _parse("start:", "MOV EAX, 1", "loop: ADD EAX, 1", "JMP loop")
    assert program.labels["start"] == 0
    assert program.labels["loop"] == 1
    assert [instr.mnemonic for instr in program.instructions] == ["MOV", "ADD", "JMP"]


def test_instruction_keeps_line_and_raw_text():
    program = _parse("", "main: mov eax, 10 ; initialize")
    instr = program.instructions[0]
    assert instr.line == 2
    assert instr.mnemonic == "MOV"
    assert instr.operands == ("eax", "10")
    assert instr.raw == "main: mov eax, 10 ; initialize"


def test_constants_substitute_into_instructions_and_data():
    program = _parse("SIZE EQU 64", ".data", "buffer: DB SIZE, SIZE", ".text", "MOV ECX, SIZE")
    assert program.constants["SIZE"] == 64
    assert program.data_segment.items[0].values == (64, 64)
    assert program.data_segment.items[0].label == "buffer"
    assert program.instructions[0].operands == ("ECX", "64")


def test_constants_can_reference_earlier_constants():
    program = _parse("BASE EQU 0xF000", "GRID_SIZE EQU 16", "LAST EQU BASE + GRID_SIZE - 1")
    assert program.constants["LAST"] == 0xF00F


def test_constant_substitution_is_whole_word():
    program = _parse("MAX EQU 100", "MOV EAX, MAXIMUM", "MOV EBX, [MAX]")
    assert program.instructions[0].operands == ("EAX", "MAXIMUM")
    assert program.instructions[1].operands == ("EBX", "[100]")


def test_constant_substitution_skips_quoted_text():
    assert substitute_constants("'MAX', MAX", {"MAX": 7}) == "'MAX', 7"


def test_redefined_constant_applies_from_its_line():
    program = _parse("N EQU 1", "MOV EAX, N", "N EQU 2", "MOV EBX, N")
    assert program.constants["N"] == 2
    assert program.instructions[0].operands == ("EAX", "1")
    assert program.instructions[1].operands == ("EBX", "2")


def test_separate_data_label_attaches_to_next_item():
    program = _parse(".data", "value:", "DD 0x12345678")
    assert program.labels["value"] == 0x2000
    assert program.data_segment.items[0].label == "value"


def test_data_label_with_non_directive_content_is_deferred():
    program = _parse(".data", "data: something", "DB 0x42")
    assert len(program.data_segment.items) == 1
    assert program.data_segment.items[0].label == "data"
    assert program.labels["data"] == 0x2000


def test_data_value_can_reference_earlier_label():
    program = _parse(".data", "first: DB 1", "ptr: DD first")
    assert program.data_segment.items[1].values == (0x2000,)


def test_instruction_in_data_section_is_fatal():
    with pytest.raises(ParseError, match=r"Expected data directive.*in \.data section") as excinfo:
        _parse(".data", "MOV EAX, 1")
    assert excinfo.value.line_no == 2
    assert excinfo.value.text == "MOV EAX, 1"


def test_data_directive_in_code_section_is_fatal():
    with pytest.raises(ParseError, match="not allowed in .text section"):
        _parse("MOV EAX, 1", "DB 5")


def test_comments_and_blank_lines_are_ignored():
    program = _parse(".data", "; comment", "", "DB 0x42 ; inline")
    assert program.data_segment.items[0].values == (0x42,)


def test_empty_data_section():
    program = _parse(".data", ".text", "MOV EAX, 1")
    assert program.data_segment.items == []
    assert len(program.instructions) == 1


def test_data_segment_bytes_are_little_endian():
    program = _parse(".data", "DW 0x1234", "DB -1")
    assert program.data_segment.to_bytes() == {0x2000: 0x34, 0x2001: 0x12, 0x2002: 0xFF}


def test_mixed_program():
    program = _parse(
        "; Data section",
        ".data",
        "message: DB 'H', 'i', 0x00",
        "count: DD 100",
        "",
        ".text",
        "start:",
        "  MOV EAX, message",
        "  MOV EBX, count",
        "  HLT",
    )
    assert len(program.data_segment.items) == 2
    assert program.labels["message"] == 0x2000
    assert program.labels["count"] == 0x2003
    assert len(program.instructions) == 3
    assert program.get_label("start") == 0
    assert program.get_constant("missing") is None
