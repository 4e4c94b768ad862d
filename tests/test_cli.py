import json
from pathlib import Path

from asmcore.cli import EXIT_DIAGNOSTIC_ERRORS, EXIT_LOAD_FAILURE, EXIT_OK, main


def _source(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "prog.asm"
    path.write_text(text, encoding="utf-8")
    return path


def test_clean_file_exits_zero(tmp_path: Path, capsys):
    path = _source(tmp_path, "main:\n  MOV EAX, 1\n  HLT\n")
    assert main([str(path)]) == EXIT_OK
    assert capsys.readouterr().out == ""


def test_errors_are_printed_and_set_exit_code(tmp_path: Path, capsys):
    path = _source(tmp_path, "MOV EAX\nHLT\n")
    assert main([str(path)]) == EXIT_DIAGNOSTIC_ERRORS
    out = capsys.readouterr().out
    assert f"{path}:1:1: error: MOV requires exactly 2 operands, found 1 [asm-validator]" in out


def test_warnings_alone_exit_zero(tmp_path: Path, capsys):
    path = _source(tmp_path, "HLT\nMOV EAX, 1\n")
    assert main([str(path)]) == EXIT_OK
    assert "warning: Unreachable code" in capsys.readouterr().out


def test_min_severity_filters_output(tmp_path: Path, capsys):
    path = _source(tmp_path, "HLT\nMOV EAX, 1\n")
    assert main([str(path), "--min-severity", "error"]) == EXIT_OK
    assert capsys.readouterr().out == ""


def test_json_output_with_program_summary(tmp_path: Path, capsys):
    path = _source(tmp_path, "SIZE EQU 4\n.data\nbuf: DB SIZE\n.text\nstart: MOV EAX, SIZE\nHLT\n")
    assert main([str(path), "--format", "json", "--program"]) == EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["diagnostics"] == []
    program = payload["program"]
    assert program["instructions"] == 2
    assert program["labels"] == {"buf": 0x2000, "start": 0}
    assert program["constants"] == {"SIZE": 4}
    assert program["data_items"] == [{"address": 0x2000, "size": 1, "values": [4], "label": "buf"}]
    assert program["lcd"] == [8, 8]


def test_parse_error_exits_two(tmp_path: Path, capsys):
    path = _source(tmp_path, ".data\nMOV EAX, 1\n")
    assert main([str(path), "--program"]) == EXIT_LOAD_FAILURE
    assert "2: load error: Expected data directive" in capsys.readouterr().err


def test_missing_source_exits_two(tmp_path: Path, capsys):
    assert main([str(tmp_path / "nope.asm")]) == EXIT_LOAD_FAILURE
    assert "cannot read file" in capsys.readouterr().err


def test_bad_table_exits_two(tmp_path: Path, capsys):
    path = _source(tmp_path, "HLT\n")
    table = tmp_path / "table.json"
    table.write_text("[]", encoding="utf-8")
    assert main([str(path), "--table", str(table)]) == EXIT_LOAD_FAILURE
    assert "Mnemonic table must be a JSON object" in capsys.readouterr().err
