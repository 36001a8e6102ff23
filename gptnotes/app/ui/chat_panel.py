from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from markdown import markdown
from PySide6 import QtCore, QtWidgets
from PySide6.QtCore import QUrl
from PySide6.QtGui import QFont, QPalette, QTextCursor

from gptnotes.ai.conversation import Conversation
from gptnotes.ai.service import GPTService

if TYPE_CHECKING:
    from gptnotes.app.plugin import ChatPlugin

logger = logging.getLogger(__name__)

VIEW_TYPE = "chat-panel"
DISPLAY_TEXT = "Chat with GPT"
PENDING_ROLE = "pending"


class ApiWorker(QtCore.QThread):
    """Runs one completion round trip off the GUI thread."""

    finished = QtCore.Signal(str)
    failed = QtCore.Signal(str)
    notice = QtCore.Signal(str)

    def __init__(self, service: GPTService, messages: List[dict], parent=None):
        super().__init__(parent)
        self.service = service
        self.messages = messages

    def run(self) -> None:
        try:
            response = self.service.fetch_response(self.messages, notify=self.notice.emit)
        except Exception as exc:
            logger.exception("Completion worker crashed")
            self.failed.emit(str(exc))
            return
        self.finished.emit(response)


class ChatPanel(QtWidgets.QWidget):
    """Chat view docked on the right; one conversation at a time."""

    def eventFilter(self, obj, event):  # type: ignore[override]
        if obj is self.input_edit and event.type() == QtCore.QEvent.KeyPress:
            if event.key() in (QtCore.Qt.Key_Return, QtCore.Qt.Key_Enter):
                if not (event.modifiers() & QtCore.Qt.ShiftModifier):
                    self._send_from_input()
                    return True
        return super().eventFilter(obj, event)

    def __init__(self, plugin: "ChatPlugin", parent=None, font_size: int = 13):
        super().__init__(parent)
        self.plugin = plugin
        self.conversation = Conversation()
        self._entries: List[Tuple[str, str]] = []
        self._message_map: dict[str, str] = {}
        self._busy = False
        self._spinner_frame = 0
        self.font_size = font_size
        self._spinner_timer = QtCore.QTimer(self)
        self._spinner_timer.setInterval(300)
        self._spinner_timer.timeout.connect(self._advance_spinner)
        self._build_ui()

    def get_view_type(self) -> str:
        return VIEW_TYPE

    def get_display_text(self) -> str:
        return DISPLAY_TEXT

    def _build_ui(self) -> None:
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(6)
        self.chat_view = QtWidgets.QTextBrowser()
        self.chat_view.setOpenExternalLinks(False)
        self.chat_view.setOpenLinks(False)
        self.chat_view.anchorClicked.connect(self._on_anchor_clicked)
        self.chat_view.setReadOnly(True)
        self.chat_view.setStyleSheet("QTextBrowser { padding: 6px; }")
        layout.addWidget(self.chat_view, 1)

        self.status_label = QtWidgets.QLabel("")
        self.status_label.setStyleSheet("color: #767676;")
        layout.addWidget(self.status_label)

        input_row = QtWidgets.QHBoxLayout()
        input_row.setSpacing(6)
        self.input_edit = QtWidgets.QPlainTextEdit()
        self.input_edit.setPlaceholderText("Type a message...")
        line_height = self.input_edit.fontMetrics().lineSpacing()
        self.input_edit.setFixedHeight(line_height * 3 + 12)
        self.input_edit.installEventFilter(self)
        input_row.addWidget(self.input_edit, 1)
        self.send_btn = QtWidgets.QToolButton()
        self.send_btn.setText("➤")
        self.send_btn.setToolTip("Send")
        self.send_btn.setFixedWidth(32)
        self.send_btn.clicked.connect(self._send_from_input)
        input_row.addWidget(self.send_btn)
        layout.addLayout(input_row)
        self._apply_font_size()

    # --- Public API -------------------------------------------------
    def is_busy(self) -> bool:
        return self._busy

    def transcript_entries(self) -> List[Tuple[str, str]]:
        return list(self._entries)

    def focus_input(self) -> None:
        self.input_edit.setFocus(QtCore.Qt.FocusReason.ShortcutFocusReason)

    def set_font_size(self, size: int) -> None:
        self.font_size = max(6, min(24, size))
        self._apply_font_size()

    def send_message(self, user_message: str) -> None:
        if not (user_message or "").strip() or self._busy:
            return
        self.input_edit.clear()

        editor = self.plugin.get_active_markdown_editor()
        context_text = ""
        if editor is not None:
            context_text = editor.get_value()
            logger.debug("Note context: %s", context_text)
        else:
            logger.debug("No active Markdown editor found.")

        plan = self.conversation.begin_turn(user_message, context_text)
        if plan.reset:
            self._entries = []
        if plan.command_only:
            self._render_messages()
            self.plugin.notice("Started new conversation")
            return
        if not plan.needs_request:
            return

        self._entries.append(("user", user_message))
        self._entries.append((PENDING_ROLE, ""))
        self._set_busy(True)
        self._render_messages()
        logger.debug("Chat payload: %s", plan.messages)
        self.plugin.request_completion(plan.messages, self._handle_response)

    def insert_in_editor(self, text: str) -> None:
        editor = self.plugin.get_active_markdown_editor()
        if editor is None:
            self.plugin.notice("No active editor found.")
            return
        editor.replace_range(text, editor.get_cursor())
        self.plugin.notice("Message inserted into the editor.")

    # --- Internal helpers -------------------------------------------
    def _send_from_input(self) -> None:
        self.send_message(self.input_edit.toPlainText())

    def _handle_response(self, response: str) -> None:
        self.conversation.add_assistant_turn(response)
        for idx in range(len(self._entries) - 1, -1, -1):
            if self._entries[idx][0] == PENDING_ROLE:
                self._entries[idx] = ("assistant", response)
                break
        else:
            self._entries.append(("assistant", response))
        self._set_busy(False)
        self._render_messages()

    def _set_busy(self, busy: bool) -> None:
        self._busy = busy
        self.send_btn.setEnabled(not busy)
        if busy:
            self._spinner_frame = 0
            self._update_spinner_label()
            self._spinner_timer.start()
        else:
            self._spinner_timer.stop()
            self.status_label.clear()

    def _advance_spinner(self) -> None:
        self._spinner_frame = (self._spinner_frame + 1) % 4
        self._update_spinner_label()

    def _update_spinner_label(self) -> None:
        self.status_label.setText("Waiting for reply" + "." * (self._spinner_frame + 1))

    def _render_messages(self) -> None:
        parts: List[str] = []
        base_color = self.palette().color(QPalette.Base).name()
        text_color = self.palette().color(QPalette.Text).name()
        accent = self.palette().color(QPalette.Highlight).name()
        parts.append(
            f"<style>body {{ background:{base_color}; color:{text_color}; }}"
            f".bubble {{ border-radius:8px; padding:6px 10px; margin:8px 0; }}"
            f".user {{ background:rgba(120,220,110,0.18); margin-left:40px; }}"
            f".assistant {{ background:rgba(127,127,127,0.10); }}"
            f".pending {{ color:#767676; }}"
            f".actions {{ text-align:right; font-size:11px; }}"
            f".actions a {{ text-decoration:none; color:{accent}; }}</style>"
        )
        self._message_map = {}
        for idx, (role, content) in enumerate(self._entries):
            msg_id = f"msg-{idx}"
            if role == "user":
                safe = html.escape(content).replace("\n", "<br>")
                parts.append(f"<div class='bubble user' id='{msg_id}'>{safe}</div>")
            elif role == PENDING_ROLE:
                parts.append("<div class='bubble assistant pending'>●●●</div>")
            else:
                rendered = markdown(content, extensions=["fenced_code", "tables"])
                if self._is_plain_markdown(rendered):
                    rendered = "<p>" + html.escape(content).replace("\n", "<br>") + "</p>"
                actions = f"<a href='action:insert:{msg_id}' title='Insert into the editor'>Insert ⧉</a>"
                parts.append(
                    f"<div class='bubble assistant' id='{msg_id}'>{rendered}"
                    f"<div class='actions'>{actions}</div></div>"
                )
                self._message_map[msg_id] = content
        self.chat_view.setHtml("".join(parts))
        cursor = self.chat_view.textCursor()
        cursor.movePosition(QTextCursor.End)
        self.chat_view.setTextCursor(cursor)

    @staticmethod
    def _is_plain_markdown(rendered_html: str) -> bool:
        """Heuristic: a single paragraph with no rich tags renders better as escaped text."""
        if not rendered_html.startswith("<p>") or not rendered_html.endswith("</p>"):
            return False
        heavy_tags = ("<ul", "<ol", "<pre", "<code", "<h", "<table", "<blockquote", "<li", "<hr", "<img", "<a ")
        return not any(tag in rendered_html for tag in heavy_tags)

    def _on_anchor_clicked(self, url: QUrl) -> None:
        href = url.toString()
        if href.startswith("action:insert:"):
            msg_id = href[len("action:insert:") :]
            text = self._message_map.get(msg_id)
            if text is not None:
                self.insert_in_editor(text)

    def _apply_font_size(self) -> None:
        font = QFont()
        font.setPointSize(self.font_size)
        self.chat_view.document().setDefaultFont(font)
        self.input_edit.setFont(font)
