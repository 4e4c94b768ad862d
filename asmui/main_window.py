from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QTimer, Qt
from PyQt6.QtGui import QAction, QColor, QFont, QFontDatabase, QKeySequence, QPalette
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QComboBox,
    QDockWidget,
    QFileDialog,
    QHeaderView,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QStatusBar,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from asmcore import control_flow, conventions, symbols, validator
from asmcore.analyzer import has_errors
from asmcore.mnemonics import MnemonicTable, MnemonicTableError, mnemonic_table_manager
from asmcore.parser import ParseError, parse_assembly
from asmcore.program_info import detect_lcd_dimensions
from asmui.diagnostics import DiagnosticsController, DiagnosticsTableModel
from asmui.editor import AsmEditor


logger = logging.getLogger(__name__)

ANALYSIS_DELAY_MS = 300
SOURCE_FILTERS = [
    ("All sources", None),
    ("Labels", [symbols.SOURCE]),
    ("Instructions", [validator.SOURCE]),
    ("Control flow", [control_flow.SOURCE]),
    ("Conventions", [conventions.SOURCE]),
]


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("ASM Studio")
        self.resize(1100, 700)

        self.current_file: Optional[str] = None
        self.document_version = 0
        self.table = mnemonic_table_manager.current()
        self.controller = DiagnosticsController(self.table)
        mnemonic_table_manager.on_change(self._on_table_changed)

        self.analysis_timer = QTimer(self)
        self.analysis_timer.setSingleShot(True)
        self.analysis_timer.setInterval(ANALYSIS_DELAY_MS)
        self.analysis_timer.timeout.connect(self.run_analysis)

        self._build_ui()
        self._apply_dracula_theme()
        self.controller.changed.connect(self._update_status)
        self.run_analysis()

    def _build_ui(self) -> None:
        self.editor = AsmEditor(self.table, self.controller, self)
        self.editor.setFont(self._default_font())
        self.editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.editor.textChanged.connect(self.on_text_changed)
        self.setCentralWidget(self.editor)

        self.diagnostics_model = DiagnosticsTableModel(self.controller, self)
        self.diagnostics_view = QTableView()
        self.diagnostics_view.setModel(self.diagnostics_model)
        self.diagnostics_view.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.diagnostics_view.verticalHeader().setVisible(False)
        header = self.diagnostics_view.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.ResizeToContents)
        header.setSectionResizeMode(1, QHeaderView.ResizeMode.ResizeToContents)
        header.setSectionResizeMode(2, QHeaderView.ResizeMode.Stretch)
        header.setSectionResizeMode(3, QHeaderView.ResizeMode.ResizeToContents)
        self.diagnostics_view.doubleClicked.connect(self.on_diagnostic_activated)

        self.source_filter = QComboBox()
        for title, _sources in SOURCE_FILTERS:
            self.source_filter.addItem(title)
        self.source_filter.currentIndexChanged.connect(self.on_source_filter_changed)

        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.addWidget(self.source_filter)
        layout.addWidget(self.diagnostics_view)
        self.diagnostics_dock = QDockWidget("Problems", self)
        self.diagnostics_dock.setWidget(panel)
        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, self.diagnostics_dock)

        self.log_output = QPlainTextEdit()
        self.log_output.setReadOnly(True)
        self.log_dock = QDockWidget("Output", self)
        self.log_dock.setWidget(self.log_output)
        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, self.log_dock)
        self.tabifyDockWidget(self.diagnostics_dock, self.log_dock)
        self.diagnostics_dock.raise_()

        self.state_label = QLabel()
        self.table_label = QLabel()
        status = QStatusBar()
        status.addWidget(self.state_label)
        status.addPermanentWidget(self.table_label)
        self.setStatusBar(status)

        file_menu = self.menuBar().addMenu("&File")
        self._add_action(file_menu, "&New", self.new_file, QKeySequence.StandardKey.New)
        self._add_action(file_menu, "&Open...", self.open_file, QKeySequence.StandardKey.Open)
        self._add_action(file_menu, "&Save", self.save_file, QKeySequence.StandardKey.Save)
        self._add_action(file_menu, "Save &As...", self.save_file_as, QKeySequence.StandardKey.SaveAs)
        file_menu.addSeparator()
        self._add_action(file_menu, "Load Mnemonic &Table...", self.load_table)
        self.bundled_tables_menu = file_menu.addMenu("&Bundled Tables")
        self._rebuild_bundled_tables_menu()
        self._add_action(file_menu, "&Reload Table", self.reload_table)
        file_menu.addSeparator()
        self._add_action(file_menu, "E&xit", self.close, QKeySequence.StandardKey.Quit)

        build_menu = self.menuBar().addMenu("&Build")
        self._add_action(build_menu, "&Parse Program", self.parse_current_program, "F7")
        self._add_action(build_menu, "&Analyze Now", self.run_analysis, "Ctrl+Shift+A")

        view_menu = self.menuBar().addMenu("&View")
        view_menu.addAction(self.diagnostics_dock.toggleViewAction())
        view_menu.addAction(self.log_dock.toggleViewAction())

    def _add_action(self, menu, title: str, handler, shortcut=None) -> QAction:
        action = QAction(title, self)
        if shortcut is not None:
            action.setShortcut(QKeySequence(shortcut))
        action.triggered.connect(handler)
        menu.addAction(action)
        return action

    def _default_font(self) -> QFont:
        preferred = [
            "JetBrains Mono",
            "Cascadia Code",
            "Fira Code",
            "Source Code Pro",
            "DejaVu Sans Mono",
            "Consolas",
            "Menlo",
        ]
        available = set(QFontDatabase.families())
        for name in preferred:
            if name in available:
                return QFont(name, 11)
        return QFont("Monospace", 11)

    def _apply_dracula_theme(self) -> None:
        base_bg = QColor("#282a36")
        text_fg = QColor("#f8f8f2")
        highlight_bg = QColor("#44475a")
        panel_bg = QColor("#1e1f29")
        border = QColor("#3c3f58")

        for edit in (self.editor, self.log_output):
            palette = edit.palette()
            palette.setColor(QPalette.ColorRole.Base, base_bg)
            palette.setColor(QPalette.ColorRole.Text, text_fg)
            palette.setColor(QPalette.ColorRole.Highlight, highlight_bg)
            edit.setPalette(palette)
        self.editor.set_gutter_colors(panel_bg, QColor("#6272a4"))

        self.diagnostics_view.setStyleSheet(
            "QTableView {"
            f" background-color: {panel_bg.name()};"
            f" color: {text_fg.name()};"
            f" gridline-color: {border.name()};"
            "}"
            "QHeaderView::section {"
            f" background-color: {border.name()};"
            f" color: {text_fg.name()};"
            " padding: 4px;"
            "}"
        )

        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Window, panel_bg)
        palette.setColor(QPalette.ColorRole.WindowText, text_fg)
        palette.setColor(QPalette.ColorRole.Button, panel_bg)
        palette.setColor(QPalette.ColorRole.ButtonText, text_fg)
        self.setPalette(palette)

    def log(self, message: str) -> None:
        self.log_output.appendPlainText(message)

    def on_text_changed(self) -> None:
        self.document_version += 1
        self.analysis_timer.start()

    def run_analysis(self) -> None:
        self.analysis_timer.stop()
        self.controller.run(self.document_version, self.editor.toPlainText())

    def on_source_filter_changed(self, index: int) -> None:
        self.diagnostics_model.set_source_filter(SOURCE_FILTERS[index][1])

    def on_diagnostic_activated(self, index) -> None:
        diag = self.diagnostics_model.diagnostic_at(index.row())
        if diag is None:
            return
        self.editor.jump_to_line(diag.range.start_line)
        self.editor.setFocus()

    def _update_status(self) -> None:
        diags = self.controller.diagnostics()
        state = "Errors" if has_errors(diags) else "OK"
        self.state_label.setText(f"{state} | {len(diags)} problems")
        self.table_label.setText(f"Table: {self.table.name}")

    def _set_current_file(self, path: Optional[str]) -> None:
        self.current_file = path
        title = path if path else "untitled"
        self.setWindowTitle(f"ASM Studio - {title}")

    def new_file(self) -> None:
        self.editor.clear()
        self._set_current_file(None)
        self.log("New file created.")

    def open_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open .asm", "", "ASM Files (*.asm);;All Files (*)")
        if not path:
            return
        self.open_file_path(path)

    def open_file_path(self, path: str) -> bool:
        try:
            with open(path, "r", encoding="utf-8") as file:
                self.editor.setPlainText(file.read())
        except OSError as exc:
            QMessageBox.warning(self, "Open Failed", str(exc))
            return False
        self._set_current_file(path)
        self.run_analysis()
        self.log(f"Opened {path}")
        return True

    def save_file(self) -> None:
        if not self.current_file:
            self.save_file_as()
            return
        try:
            with open(self.current_file, "w", encoding="utf-8") as file:
                file.write(self.editor.toPlainText())
            self.log(f"Saved {self.current_file}")
        except OSError as exc:
            QMessageBox.warning(self, "Save Failed", str(exc))

    def save_file_as(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save .asm", "", "ASM Files (*.asm);;All Files (*)")
        if not path:
            return
        self._set_current_file(path)
        self.save_file()

    def parse_current_program(self) -> bool:
        try:
            program = parse_assembly(self.editor.toPlainText())
        except ParseError as exc:
            self.log(f"Parse error (line {exc.line_no}): {exc.message}")
            self.log(f"  {exc.text}")
            QMessageBox.critical(self, "Parse Error", f"Line {exc.line_no}: {exc.message}\n\n{exc.text.strip()}")
            self.editor.jump_to_line(exc.line_no - 1)
            return False

        width, height = detect_lcd_dimensions(program)
        self.log(
            f"Parsed {len(program.instructions)} instructions, {len(program.labels)} labels, "
            f"{len(program.constants)} constants, {len(program.data_segment.items)} data items; "
            f"code starts at 0x{program.code_start_address:04X}; LCD {width}x{height}"
        )
        return True

    def _rebuild_bundled_tables_menu(self) -> None:
        self.bundled_tables_menu.clear()
        paths = mnemonic_table_manager.list_bundled()
        if not paths:
            empty_action = QAction("No bundled tables", self)
            empty_action.setEnabled(False)
            self.bundled_tables_menu.addAction(empty_action)
            return
        for path in paths:
            action = QAction(path.stem, self)
            action.triggered.connect(lambda checked=False, p=str(path): self.load_table_path(p))
            self.bundled_tables_menu.addAction(action)

    def load_table(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Load Mnemonic Table", "", "JSON Files (*.json);;All Files (*)")
        if not path:
            return
        self.load_table_path(path)

    def load_table_path(self, path: str) -> bool:
        try:
            mnemonic_table_manager.load_from_path(path)
        except MnemonicTableError as exc:
            QMessageBox.warning(self, "Mnemonic Table", exc.message)
            return False
        self.log(f"Loaded mnemonic table from {path}")
        return True

    def reload_table(self) -> None:
        try:
            table = mnemonic_table_manager.reload()
        except MnemonicTableError as exc:
            QMessageBox.warning(self, "Mnemonic Table", exc.message)
            return
        self.log(f"Reloaded mnemonic table {table.name!r}")

    def _on_table_changed(self, table: MnemonicTable) -> None:
        self.table = table
        self.controller.set_table(table)
        self.editor.set_table(table)
        self.run_analysis()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = QApplication([])
    window = MainWindow()
    window.show()
    app.exec()


if __name__ == "__main__":
    main()
