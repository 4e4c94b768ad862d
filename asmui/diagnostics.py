from __future__ import annotations

from typing import Iterable, List, Optional

from PyQt6.QtCore import QAbstractTableModel, QModelIndex, QObject, Qt, pyqtSignal
from PyQt6.QtGui import QColor

from asmcore.analyzer import analyze
from asmcore.mnemonics import MnemonicTable
from asmcore.model import Diagnostic, Severity


SEVERITY_COLORS = {
    Severity.ERROR: "#ff5555",
    Severity.WARNING: "#ffb86c",
    Severity.INFORMATION: "#8be9fd",
    Severity.HINT: "#6272a4",
}


class DiagnosticsController(QObject):
    changed = pyqtSignal()

    def __init__(self, table: Optional[MnemonicTable] = None) -> None:
        super().__init__()
        self.table = table
        self._version = -1
        self._diagnostics: List[Diagnostic] = []

    @property
    def version(self) -> int:
        return self._version

    def set_table(self, table: MnemonicTable) -> None:
        self.table = table

    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def publish(self, version: int, diagnostics: List[Diagnostic]) -> bool:
        if version < self._version:
            return False
        self._version = version
        self._diagnostics = list(diagnostics)
        self.changed.emit()
        return True

    def run(self, version: int, text: str) -> bool:
        return self.publish(version, analyze(text, self.table))

    def for_line(self, line: int) -> List[Diagnostic]:
        return [
            diag
            for diag in self._diagnostics
            if diag.range.start_line <= line <= diag.range.end_line
        ]

    def worst_severity(self, line: int) -> Optional[Severity]:
        severities = [diag.severity for diag in self.for_line(line)]
        return min(severities) if severities else None


class DiagnosticsTableModel(QAbstractTableModel):
    headers = ["Severity", "Line", "Message", "Source"]

    def __init__(self, controller: DiagnosticsController, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.controller = controller
        self._rows: List[Diagnostic] = []
        self._sources: Optional[set[str]] = None
        self.controller.changed.connect(self.refresh)
        self.refresh()

    def set_source_filter(self, sources: Optional[Iterable[str]]) -> None:
        self._sources = set(sources) if sources is not None else None
        self.refresh()

    def refresh(self) -> None:
        self.beginResetModel()
        rows = self.controller.diagnostics()
        if self._sources is not None:
            rows = [diag for diag in rows if diag.source in self._sources]
        self._rows = rows
        self.endResetModel()

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # type: ignore[override]
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # type: ignore[override]
        return 0 if parent.isValid() else len(self.headers)

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if role == Qt.ItemDataRole.DisplayRole and orientation == Qt.Orientation.Horizontal:
            return self.headers[section]
        return None

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:  # type: ignore[override]
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        return Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):  # type: ignore[override]
        if not index.isValid():
            return None
        diag = self._rows[index.row()]
        column = index.column()

        if role == Qt.ItemDataRole.DisplayRole:
            if column == 0:
                return diag.severity.label
            if column == 1:
                return str(diag.range.start_line + 1)
            if column == 2:
                return diag.message
            if column == 3:
                return diag.source
        if role == Qt.ItemDataRole.ForegroundRole and column == 0:
            return QColor(SEVERITY_COLORS[diag.severity])
        if role == Qt.ItemDataRole.ToolTipRole:
            return diag.message
        return None

    def diagnostic_at(self, row: int) -> Optional[Diagnostic]:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None
