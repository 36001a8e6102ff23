from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from PySide6.QtCore import QObject, Slot

from gptnotes.ai.autocomplete import build_autocomplete_messages, completion_insert_text
from gptnotes.ai.service import GPTService, is_error_response
from gptnotes.app import config, vault
from gptnotes.app.config import PluginSettings
from gptnotes.app.ui.chat_panel import VIEW_TYPE, ApiWorker, ChatPanel
from gptnotes.app.ui.markdown_editor import EditorPosition, MarkdownEditor
from gptnotes.app.ui.settings_dialog import ChatSettingTab

if TYPE_CHECKING:
    from gptnotes.app.ui.main_window import MainWindow

logger = logging.getLogger(__name__)

AUTOCOMPLETE_COMMAND_ID = "autocomplete-with-ai"
AUTOCOMPLETE_COMMAND_NAME = "Autocomplete with AI"


class ChatPlugin(QObject):
    """Chat panel, autocomplete command and daily notes on top of the host window."""

    name = "GPT Chat"

    def __init__(self, host: "MainWindow", service: Optional[GPTService] = None) -> None:
        super().__init__(host)
        self.host = host
        self.settings = PluginSettings()
        self.gpt_service = service
        self._workers: Dict[ApiWorker, Callable[[str], None]] = {}

    def on_load(self) -> None:
        self.load_settings()
        if self.gpt_service is None:
            self.gpt_service = GPTService(lambda: self.settings)

        self.host.register_view(VIEW_TYPE, self._create_chat_view)
        self.host.add_ribbon_icon("💬", "Open Chat", self.activate_chat_view)
        logger.debug("Adding daily note ribbon action")
        self.host.add_ribbon_icon("📅", "Create Daily Note", self.create_daily_note)
        self.host.add_setting_tab(self.name, lambda: ChatSettingTab(self))
        self.host.add_command(
            AUTOCOMPLETE_COMMAND_ID,
            AUTOCOMPLETE_COMMAND_NAME,
            self.autocomplete_with_ai,
            shortcut="Ctrl+Shift+Space",
        )

    # --- Settings ---------------------------------------------------
    def load_settings(self) -> None:
        self.settings = config.load_settings()

    def save_settings(self) -> None:
        config.save_settings(self.settings)

    # --- Host helpers -----------------------------------------------
    def notice(self, message: str) -> None:
        self.host.notice(message)

    def get_active_markdown_editor(self) -> Optional[MarkdownEditor]:
        return self.host.active_markdown_editor()

    def request_completion(self, messages: List[dict], on_finished: Callable[[str], None]) -> None:
        """Fetch a reply in a worker thread and hand the text to ``on_finished``.

        ``on_finished`` always receives a string; failures arrive as ``Error: ...``.
        """
        worker = ApiWorker(self.gpt_service, messages)
        self._workers[worker] = on_finished
        # Bound slots on this QObject so results are delivered on the GUI thread.
        worker.finished.connect(self._on_worker_finished)
        worker.failed.connect(self._on_worker_failed)
        worker.notice.connect(self._on_worker_notice)
        worker.start()

    @Slot(str)
    def _on_worker_finished(self, response: str) -> None:
        callback = self._release_worker(self.sender())
        if callback is not None:
            callback(response)

    @Slot(str)
    def _on_worker_failed(self, err: str) -> None:
        callback = self._release_worker(self.sender())
        if callback is not None:
            callback(f"Error: {err}")

    @Slot(str)
    def _on_worker_notice(self, message: str) -> None:
        self.notice(message)

    def _release_worker(self, worker) -> Optional[Callable[[str], None]]:
        if not isinstance(worker, ApiWorker):
            return None
        worker.wait(1000)
        return self._workers.pop(worker, None)

    # --- Views ------------------------------------------------------
    def _create_chat_view(self) -> ChatPanel:
        return ChatPanel(self, font_size=config.load_chat_font_size())

    def activate_chat_view(self) -> ChatPanel:
        views = self.host.get_views_of_type(VIEW_TYPE)
        view = views[0] if views else self.host.open_view(VIEW_TYPE)
        self.host.reveal_view(view)
        return view

    # --- Commands ---------------------------------------------------
    def autocomplete_with_ai(self) -> None:
        editor = self.get_active_markdown_editor()
        if editor is None:
            self.notice("No active editor found.")
            return
        cursor = editor.get_cursor()
        messages = build_autocomplete_messages(editor.get_range(EditorPosition(0, 0), cursor))
        if messages is None:
            self.notice("The editor is empty. Write something before autocompleting.")
            return
        note_path = editor.current_relative_path()
        logger.debug("Autocomplete payload: %s", messages)
        self.request_completion(
            messages, lambda response: self._apply_autocomplete(editor, note_path, cursor, response)
        )

    def _apply_autocomplete(
        self,
        editor: MarkdownEditor,
        note_path: Optional[str],
        cursor: EditorPosition,
        response: str,
    ) -> None:
        if is_error_response(response):
            self.notice("There was a problem getting the AI response.")
            return
        if editor.current_relative_path() != note_path:
            logger.info("Dropping autocomplete for %s; the editor moved to another note", note_path)
            self.notice("The note changed before the AI response arrived; nothing was inserted.")
            return
        editor.replace_range(completion_insert_text(response), cursor)
        self.notice("Text autocompleted with AI.")

    def create_daily_note(self, today: Optional[dt.date] = None) -> Optional[Path]:
        root = self.host.vault_root
        if not root:
            self.notice("Open a vault before creating a daily note.")
            return None
        day = today or dt.date.today()
        try:
            note, _created = vault.ensure_daily_note(Path(root), day)
        except (OSError, vault.VaultAccessError) as exc:
            logger.warning("Failed to create daily note for %s: %s", day, exc)
            self.notice(f"Could not create daily note: {exc}")
            return None
        self.host.open_note(vault.daily_note_path(day))
        return note
