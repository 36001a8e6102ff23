from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import NamedTuple, Optional

from PySide6.QtCore import Signal
from PySide6.QtGui import QFont, QSyntaxHighlighter, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import QPlainTextEdit

from gptnotes.app import vault

logger = logging.getLogger(__name__)


class EditorPosition(NamedTuple):
    line: int
    ch: int


class MarkdownHighlighter(QSyntaxHighlighter):
    """Bold headings and dim fenced code; enough to read notes comfortably."""

    HEADING_RE = re.compile(r"^#{1,6}\s")
    FENCE_RE = re.compile(r"^\s*```")

    def __init__(self, document) -> None:
        super().__init__(document)
        self.heading_format = QTextCharFormat()
        self.heading_format.setFontWeight(QFont.Bold)
        self.code_format = QTextCharFormat()
        self.code_format.setFontFamilies(["monospace"])

    def highlightBlock(self, text: str) -> None:  # type: ignore[override]
        in_code = self.previousBlockState() == 1
        if self.FENCE_RE.match(text):
            self.setFormat(0, len(text), self.code_format)
            self.setCurrentBlockState(0 if in_code else 1)
            return
        self.setCurrentBlockState(1 if in_code else 0)
        if in_code:
            self.setFormat(0, len(text), self.code_format)
        elif self.HEADING_RE.match(text):
            self.setFormat(0, len(text), self.heading_format)


class MarkdownEditor(QPlainTextEdit):
    """Plain-text Markdown editor with a line/character cursor API."""

    dirtyChanged = Signal(bool)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._vault_root: Optional[Path] = None
        self._current_path: Optional[str] = None
        self._dirty = False
        self._loading = False
        self._highlighter = MarkdownHighlighter(self.document())
        self.setPlaceholderText("Open or create a note to start writing…")
        self.textChanged.connect(self._on_text_changed)

    # --- Note I/O ---------------------------------------------------
    def current_relative_path(self) -> Optional[str]:
        return self._current_path

    def is_dirty(self) -> bool:
        return self._dirty

    def load_note(self, vault_root: Path, rel_path: str) -> None:
        content = vault.read_note(vault_root, rel_path)
        self._loading = True
        try:
            self.setPlainText(content)
        finally:
            self._loading = False
        self._vault_root = vault_root
        self._current_path = rel_path
        self._set_dirty(False)
        self.moveCursor(QTextCursor.End)
        logger.debug("Loaded note %s (%d chars)", rel_path, len(content))

    def save_note(self) -> bool:
        if not self._vault_root or not self._current_path or not self._dirty:
            return False
        vault.write_note(self._vault_root, self._current_path, self.get_value())
        self._set_dirty(False)
        logger.debug("Saved note %s", self._current_path)
        return True

    def close_note(self) -> None:
        self._loading = True
        try:
            self.clear()
        finally:
            self._loading = False
        self._current_path = None
        self._set_dirty(False)

    # --- Editor API -------------------------------------------------
    def get_value(self) -> str:
        return self.toPlainText()

    def get_cursor(self) -> EditorPosition:
        cursor = self.textCursor()
        return EditorPosition(cursor.blockNumber(), cursor.positionInBlock())

    def get_range(self, start: EditorPosition, end: EditorPosition) -> str:
        first = self._offset(start)
        last = self._offset(end)
        if last < first:
            first, last = last, first
        return self.get_value()[first:last]

    def replace_range(self, text: str, start: EditorPosition, end: Optional[EditorPosition] = None) -> None:
        """Replace ``start``..``end`` with ``text``; insert at ``start`` when ``end`` is omitted."""
        first = self._offset(start)
        last = self._offset(end) if end is not None else first
        cursor = QTextCursor(self.document())
        cursor.setPosition(min(first, last))
        cursor.setPosition(max(first, last), QTextCursor.KeepAnchor)
        cursor.beginEditBlock()
        cursor.insertText(text)
        cursor.endEditBlock()
        self.setTextCursor(cursor)

    def _offset(self, pos: EditorPosition) -> int:
        doc = self.document()
        line = max(0, min(pos.line, doc.blockCount() - 1))
        block = doc.findBlockByNumber(line)
        ch = max(0, min(pos.ch, block.length() - 1))
        return block.position() + ch

    # --- Internal helpers -------------------------------------------
    def _on_text_changed(self) -> None:
        if self._loading or self._current_path is None:
            return
        self._set_dirty(True)

    def _set_dirty(self, dirty: bool) -> None:
        if dirty == self._dirty:
            return
        self._dirty = dirty
        self.dirtyChanged.emit(dirty)
