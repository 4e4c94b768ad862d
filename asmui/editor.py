from __future__ import annotations

import re
from typing import Optional

from PyQt6.QtCore import QRect, QSize, QStringListModel, Qt
from PyQt6.QtGui import QColor, QFont, QPainter, QSyntaxHighlighter, QTextCharFormat, QTextCursor
from PyQt6.QtWidgets import QCompleter, QPlainTextEdit, QTextEdit, QToolTip, QWidget

from asmcore.assist import completion_items, hover_at, word_range_at
from asmcore.lines import DATA_DIRECTIVES, ORIGIN_DIRECTIVE, SECTION_KEYWORDS
from asmcore.mnemonics import MnemonicTable
from asmui.diagnostics import SEVERITY_COLORS, DiagnosticsController


TOKEN_RE = re.compile(r"'[^']*'|\"[^\"]*\"|[A-Za-z_.$@][A-Za-z0-9_.$@]*|-?0[xX][0-9A-Fa-f]+|-?0[bB][01]+|-?\d+")
DIRECTIVES = {*DATA_DIRECTIVES, ORIGIN_DIRECTIVE, "EQU", *SECTION_KEYWORDS}
COMPLETION_MIN_PREFIX = 2
COMPLETER_KEYS = (Qt.Key.Key_Enter, Qt.Key.Key_Return, Qt.Key.Key_Tab, Qt.Key.Key_Escape, Qt.Key.Key_Backtab)


class AsmHighlighter(QSyntaxHighlighter):
    def __init__(self, parent, table: MnemonicTable) -> None:
        super().__init__(parent)
        self.mnemonic_format = QTextCharFormat()
        self.mnemonic_format.setForeground(QColor("#ff79c6"))
        self.mnemonic_format.setFontWeight(QFont.Weight.Bold)

        self.register_format = QTextCharFormat()
        self.register_format.setForeground(QColor("#bd93f9"))

        self.number_format = QTextCharFormat()
        self.number_format.setForeground(QColor("#ffb86c"))

        self.string_format = QTextCharFormat()
        self.string_format.setForeground(QColor("#f1fa8c"))

        self.comment_format = QTextCharFormat()
        self.comment_format.setForeground(QColor("#6272a4"))

        self.directive_format = QTextCharFormat()
        self.directive_format.setForeground(QColor("#8be9fd"))
        self.directive_format.setFontWeight(QFont.Weight.Medium)

        self.label_format = QTextCharFormat()
        self.label_format.setForeground(QColor("#50fa7b"))

        self.set_table(table)

    def set_table(self, table: MnemonicTable) -> None:
        self.mnemonics = set(table.mnemonics)
        self.registers = set(table.register_names)
        self.rehighlight()

    def highlightBlock(self, text: str) -> None:
        if not text.strip():
            return

        code_end = len(text)
        for match in TOKEN_RE.finditer(text):
            token = match.group(0)
            if token[0] in "'\"":
                self.setFormat(match.start(), len(token), self.string_format)
        comment_index = self._comment_index(text)
        if comment_index >= 0:
            self.setFormat(comment_index, len(text) - comment_index, self.comment_format)
            code_end = comment_index

        for match in TOKEN_RE.finditer(text[:code_end]):
            token = match.group(0)
            upper = token.upper()
            start, end = match.span()
            if token[0] in "'\"":
                continue
            if end < code_end and text[end:].lstrip().startswith(":"):
                self.setFormat(start, len(token), self.label_format)
            elif upper in self.mnemonics:
                self.setFormat(start, len(token), self.mnemonic_format)
            elif upper in DIRECTIVES:
                self.setFormat(start, len(token), self.directive_format)
            elif upper in self.registers:
                self.setFormat(start, len(token), self.register_format)
            elif token[0].isdigit() or token[0] == "-":
                self.setFormat(start, len(token), self.number_format)

    @staticmethod
    def _comment_index(text: str) -> int:
        quote: Optional[str] = None
        for index, char in enumerate(text):
            if quote:
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char == ";":
                return index
        return -1


class GutterArea(QWidget):
    def __init__(self, editor: "AsmEditor") -> None:
        super().__init__(editor)
        self.editor = editor

    def sizeHint(self) -> QSize:
        return QSize(self.editor.gutter_width(), 0)

    def paintEvent(self, event) -> None:
        self.editor.gutter_paint_event(event)


class AsmEditor(QPlainTextEdit):
    """Plain text editor with a diagnostics gutter and mnemonic hover help."""

    def __init__(self, table: MnemonicTable, controller: DiagnosticsController, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.table = table
        self.controller = controller
        self._gutter_bg = QColor("#1e1f29")
        self._gutter_fg = QColor("#6272a4")
        self._marker_area_width = 14
        self.gutter = GutterArea(self)
        self.highlighter = AsmHighlighter(self.document(), table)
        self.viewport().setMouseTracking(True)

        self.completer = QCompleter(self)
        self.completer.setWidget(self)
        self.completer.setCaseSensitivity(Qt.CaseSensitivity.CaseInsensitive)
        self.completer.setCompletionMode(QCompleter.CompletionMode.PopupCompletion)
        self.completer.setModel(QStringListModel(self))
        self.completer.activated.connect(self.insert_completion)
        self._refresh_completions()

        self.blockCountChanged.connect(self.update_gutter_width)
        self.updateRequest.connect(self.update_gutter)
        self.controller.changed.connect(self._on_diagnostics_changed)
        self.update_gutter_width(0)

    def set_table(self, table: MnemonicTable) -> None:
        self.table = table
        self.highlighter.set_table(table)
        self._refresh_completions()

    def _refresh_completions(self) -> None:
        self.completer.model().setStringList([item.label for item in completion_items(self.table)])

    def completion_prefix(self) -> str:
        cursor = self.textCursor()
        line = cursor.block().text()
        column = cursor.positionInBlock()
        span = word_range_at(line, column)
        if span is None or span[1] != column:
            return ""
        return line[span[0]:column]

    def insert_completion(self, completion: str) -> None:
        cursor = self.textCursor()
        prefix = self.completion_prefix()
        cursor.movePosition(QTextCursor.MoveOperation.Left, QTextCursor.MoveMode.KeepAnchor, len(prefix))
        cursor.insertText(completion)
        self.setTextCursor(cursor)

    def keyPressEvent(self, event) -> None:
        popup = self.completer.popup()
        if popup.isVisible() and event.key() in COMPLETER_KEYS:
            event.ignore()
            return
        super().keyPressEvent(event)

        prefix = self.completion_prefix()
        if len(prefix) < COMPLETION_MIN_PREFIX or not event.text():
            popup.hide()
            return
        if prefix != self.completer.completionPrefix():
            self.completer.setCompletionPrefix(prefix)
            popup.setCurrentIndex(self.completer.completionModel().index(0, 0))
        rect = self.cursorRect()
        rect.setWidth(popup.sizeHintForColumn(0) + popup.verticalScrollBar().sizeHint().width())
        self.completer.complete(rect)

    def set_gutter_colors(self, background: QColor, foreground: QColor) -> None:
        self._gutter_bg = background
        self._gutter_fg = foreground
        self.gutter.update()

    def gutter_width(self) -> int:
        digits = max(1, len(str(self.blockCount())))
        return self._marker_area_width + 10 + self.fontMetrics().horizontalAdvance("9") * digits

    def update_gutter_width(self, _block_count: int) -> None:
        self.setViewportMargins(self.gutter_width(), 0, 0, 0)

    def update_gutter(self, rect: QRect, dy: int) -> None:
        if dy:
            self.gutter.scroll(0, dy)
        else:
            self.gutter.update(0, rect.y(), self.gutter.width(), rect.height())
        if rect.contains(self.viewport().rect()):
            self.update_gutter_width(0)

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        contents = self.contentsRect()
        self.gutter.setGeometry(QRect(contents.left(), contents.top(), self.gutter_width(), contents.height()))

    def gutter_paint_event(self, event) -> None:
        painter = QPainter(self.gutter)
        painter.fillRect(event.rect(), self._gutter_bg)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        block = self.firstVisibleBlock()
        block_number = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                severity = self.controller.worst_severity(block_number)
                if severity is not None:
                    radius = 4
                    center_x = self._marker_area_width // 2
                    center_y = int(top + (self.fontMetrics().height() / 2))
                    color = QColor(SEVERITY_COLORS[severity])
                    painter.setPen(color)
                    painter.setBrush(color)
                    painter.drawEllipse(center_x - radius, center_y - radius, radius * 2, radius * 2)
                painter.setPen(self._gutter_fg)
                painter.drawText(
                    self._marker_area_width,
                    int(top),
                    self.gutter.width() - self._marker_area_width - 6,
                    int(self.fontMetrics().height()),
                    Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
                    str(block_number + 1),
                )
            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            block_number += 1

    def _on_diagnostics_changed(self) -> None:
        selections = []
        for diag in self.controller.diagnostics():
            block = self.document().findBlockByNumber(diag.range.start_line)
            if not block.isValid():
                continue
            cursor = QTextCursor(block)
            start = min(diag.range.start_column, block.length() - 1)
            cursor.setPosition(block.position() + start)
            end_block = self.document().findBlockByNumber(diag.range.end_line)
            if end_block.isValid():
                end = min(diag.range.end_column, end_block.length() - 1)
                cursor.setPosition(end_block.position() + end, QTextCursor.MoveMode.KeepAnchor)
            selection = QTextEdit.ExtraSelection()
            selection.cursor = cursor
            selection.format.setUnderlineStyle(QTextCharFormat.UnderlineStyle.WaveUnderline)
            selection.format.setUnderlineColor(QColor(SEVERITY_COLORS[diag.severity]))
            selections.append(selection)
        self.setExtraSelections(selections)
        self.gutter.update()

    def jump_to_line(self, line: int) -> None:
        block = self.document().findBlockByNumber(line)
        if not block.isValid():
            return
        self.setTextCursor(QTextCursor(block))
        self.centerCursor()

    def mouseMoveEvent(self, event) -> None:
        super().mouseMoveEvent(event)
        cursor = self.cursorForPosition(event.position().toPoint())
        block = cursor.block()
        messages = [diag.message for diag in self.controller.for_line(block.blockNumber())]
        help_text = hover_at(self.table, block.text(), cursor.positionInBlock())
        parts = messages + ([help_text] if help_text else [])
        if parts:
            QToolTip.showText(event.globalPosition().toPoint(), "\n\n".join(parts), self)
        else:
            QToolTip.hideText()
