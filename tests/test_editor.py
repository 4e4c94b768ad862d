import pytest

QtGui = pytest.importorskip("PyQt6.QtGui")
pytest.importorskip("PyQt6.QtWidgets")

from asmcore.mnemonics import MnemonicTableManager  # noqa: E402
from asmui import main_window  # noqa: E402
from asmui.diagnostics import DiagnosticsController  # noqa: E402
from asmui.editor import AsmEditor  # noqa: E402


@pytest.fixture
def editor(qapp, table):
    return AsmEditor(table, DiagnosticsController(table))


def test_completer_offers_mnemonics_and_registers(editor):
    words = editor.completer.model().stringList()
    assert "MOV" in words
    assert "EAX" in words


def test_completion_prefix_is_the_word_before_the_cursor(editor):
    editor.setPlainText("  mo")
    editor.moveCursor(QtGui.QTextCursor.MoveOperation.End)
    assert editor.completion_prefix() == "mo"

    editor.setPlainText("MOV EAX, 1")
    assert editor.completion_prefix() == ""


def test_insert_completion_replaces_the_prefix(editor):
    editor.setPlainText("main:\n  mo")
    editor.moveCursor(QtGui.QTextCursor.MoveOperation.End)
    editor.insert_completion("MOV")
    assert editor.toPlainText() == "main:\n  MOV"


def test_table_change_refreshes_completions(editor, table):
    editor.completer.model().setStringList([])
    editor.set_table(table)
    assert "HLT" in editor.completer.model().stringList()


@pytest.fixture
def window(qapp, monkeypatch):
    manager = MnemonicTableManager()
    monkeypatch.setattr(main_window, "mnemonic_table_manager", manager)
    return main_window.MainWindow(), manager


def test_bundled_tables_menu_lists_shipped_tables(window):
    win, manager = window
    titles = [action.text() for action in win.bundled_tables_menu.actions()]
    assert titles == [path.stem for path in manager.list_bundled()]
    assert "default_mnemonics" in titles


def test_bundled_table_action_loads_the_table(window):
    win, manager = window
    win.bundled_tables_menu.actions()[0].trigger()
    assert manager.active_path == manager.list_bundled()[0]
    assert "Loaded mnemonic table from" in win.log_output.toPlainText()


def test_reload_table_logs_the_table_name(window):
    win, manager = window
    win.reload_table()
    assert f"Reloaded mnemonic table {manager.current().name!r}" in win.log_output.toPlainText()
