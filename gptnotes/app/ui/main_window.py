from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QDockWidget,
    QFileDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QSplitter,
    QTabWidget,
    QToolBar,
    QWidget,
)

from gptnotes.app import config, vault
from gptnotes.app.ui.markdown_editor import MarkdownEditor
from gptnotes.app.ui.settings_dialog import SettingsDialog

logger = logging.getLogger(__name__)

NOTICE_TIMEOUT_MS = 4000


class MainWindow(QMainWindow):
    """Notes window that hosts plugins: ribbon, right-hand views, commands, settings."""

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("GPT Notes")
        self.vault_root: Optional[str] = None
        self._view_factories: Dict[str, Callable[[], QWidget]] = {}
        self._views: Dict[str, List[QWidget]] = {}
        self._commands: Dict[str, QAction] = {}
        self._setting_tabs: List[Tuple[str, Callable[[], QWidget]]] = []
        self.plugins: list = []

        self.note_list = QListWidget()
        self.note_list.itemActivated.connect(self._on_note_activated)
        self.note_list.itemClicked.connect(self._on_note_activated)
        self.editor = MarkdownEditor()
        self.editor.dirtyChanged.connect(self._update_dirty_badge)

        splitter = QSplitter(Qt.Horizontal)
        splitter.addWidget(self.note_list)
        splitter.addWidget(self.editor)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 4)
        self.setCentralWidget(splitter)

        self.ribbon = QToolBar("Ribbon")
        self.ribbon.setMovable(False)
        self.addToolBar(Qt.LeftToolBarArea, self.ribbon)

        self.right_tabs = QTabWidget()
        self.right_tabs.setDocumentMode(True)
        self.right_dock = QDockWidget("Panels", self)
        self.right_dock.setObjectName("RightDock")
        self.right_dock.setWidget(self.right_tabs)
        self.addDockWidget(Qt.RightDockWidgetArea, self.right_dock)
        self.right_dock.hide()

        self._build_menus()
        self._dirty_status_label = QLabel("")
        self.statusBar().addPermanentWidget(self._dirty_status_label, 0)
        self.statusBar().showMessage("Select a vault to get started")

    def _build_menus(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        open_action = QAction("Open Vault…", self)
        open_action.setShortcut(QKeySequence.Open)
        open_action.triggered.connect(lambda: self._select_vault())
        file_menu.addAction(open_action)
        save_action = QAction("Save", self)
        save_action.setShortcut(QKeySequence.Save)
        save_action.triggered.connect(lambda: self.save_current_note())
        file_menu.addAction(save_action)
        file_menu.addSeparator()
        settings_action = QAction("Settings…", self)
        settings_action.setShortcut(QKeySequence("Ctrl+,"))
        settings_action.triggered.connect(lambda: self.open_settings())
        file_menu.addAction(settings_action)
        file_menu.addSeparator()
        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)
        self.commands_menu = self.menuBar().addMenu("&Commands")

    # --- Plugin host API --------------------------------------------
    def load_plugin(self, plugin) -> None:
        plugin.on_load()
        self.plugins.append(plugin)
        logger.info("Loaded plugin %s", getattr(plugin, "name", type(plugin).__name__))

    def notice(self, message: str) -> None:
        logger.info("Notice: %s", message)
        self.statusBar().showMessage(message, NOTICE_TIMEOUT_MS)

    def add_ribbon_icon(self, icon: str, title: str, callback: Callable[[], object]) -> QAction:
        action = QAction(icon, self)
        action.setToolTip(title)
        action.setStatusTip(title)
        action.triggered.connect(lambda _checked=False: callback())
        self.ribbon.addAction(action)
        return action

    def add_command(
        self,
        command_id: str,
        name: str,
        callback: Callable[[], object],
        shortcut: Optional[str] = None,
    ) -> QAction:
        if command_id in self._commands:
            raise ValueError(f"Command already registered: {command_id}")
        action = QAction(name, self)
        action.setObjectName(command_id)
        if shortcut:
            action.setShortcut(QKeySequence(shortcut))
            action.setShortcutContext(Qt.ApplicationShortcut)
        action.triggered.connect(lambda _checked=False: callback())
        self.commands_menu.addAction(action)
        self.addAction(action)
        self._commands[command_id] = action
        return action

    def execute_command(self, command_id: str) -> bool:
        action = self._commands.get(command_id)
        if action is None:
            return False
        action.trigger()
        return True

    def add_setting_tab(self, title: str, factory: Callable[[], QWidget]) -> None:
        self._setting_tabs.append((title, factory))

    def open_settings(self, *, modal: bool = True) -> SettingsDialog:
        dialog = SettingsDialog(self._setting_tabs, parent=self)
        if modal:
            dialog.exec()
        else:
            dialog.show()
        return dialog

    def register_view(self, view_type: str, factory: Callable[[], QWidget]) -> None:
        self._view_factories[view_type] = factory
        self._views.setdefault(view_type, [])

    def get_views_of_type(self, view_type: str) -> List[QWidget]:
        return list(self._views.get(view_type, []))

    def open_view(self, view_type: str) -> QWidget:
        factory = self._view_factories.get(view_type)
        if factory is None:
            raise KeyError(f"Unknown view type: {view_type}")
        view = factory()
        title = view.get_display_text() if hasattr(view, "get_display_text") else view_type
        self.right_tabs.addTab(view, title)
        self._views.setdefault(view_type, []).append(view)
        return view

    def reveal_view(self, view: QWidget) -> None:
        self.right_dock.show()
        self.right_dock.raise_()
        index = self.right_tabs.indexOf(view)
        if index >= 0:
            self.right_tabs.setCurrentIndex(index)
        if hasattr(view, "focus_input"):
            view.focus_input()

    def active_markdown_editor(self) -> Optional[MarkdownEditor]:
        if self.editor.current_relative_path() is None:
            return None
        return self.editor

    # --- Vault and notes --------------------------------------------
    def startup(self, vault_hint: Optional[str] = None) -> bool:
        candidate = vault_hint or config.load_last_vault()
        if candidate and Path(candidate).is_dir():
            self.set_vault(candidate)
            return True
        return self._select_vault()

    def _select_vault(self) -> bool:
        path = QFileDialog.getExistingDirectory(self, "Select Vault")
        if not path:
            return False
        self.set_vault(path)
        return True

    def set_vault(self, path: str) -> None:
        self.save_current_note()
        root = Path(path).expanduser().resolve()
        self.vault_root = str(root)
        config.save_last_vault(self.vault_root)
        self.editor.close_note()
        self.refresh_note_list()
        self.setWindowTitle(f"GPT Notes - {root.name}")
        self.statusBar().showMessage(f"Opened vault: {root}", NOTICE_TIMEOUT_MS)

    def refresh_note_list(self) -> None:
        self.note_list.clear()
        if not self.vault_root:
            return
        for rel in vault.list_notes(Path(self.vault_root)):
            item = QListWidgetItem(Path(rel).stem)
            item.setData(Qt.UserRole, rel)
            item.setToolTip(rel)
            self.note_list.addItem(item)

    def open_note(self, rel_path: str) -> None:
        if not self.vault_root:
            self.notice("Open a vault first.")
            return
        self.save_current_note()
        try:
            self.editor.load_note(Path(self.vault_root), rel_path)
        except (OSError, vault.VaultAccessError) as exc:
            QMessageBox.warning(self, "Open note", f"Could not open {rel_path}: {exc}")
            return
        self.refresh_note_list()
        self._select_note_item(rel_path)
        self.editor.setFocus()

    def save_current_note(self) -> None:
        try:
            self.editor.save_note()
        except (OSError, vault.VaultAccessError) as exc:
            logger.warning("Failed to save %s: %s", self.editor.current_relative_path(), exc)
            self.notice(f"Failed to save note: {exc}")

    def _select_note_item(self, rel_path: str) -> None:
        for row in range(self.note_list.count()):
            item = self.note_list.item(row)
            if item.data(Qt.UserRole) == rel_path:
                self.note_list.blockSignals(True)
                self.note_list.setCurrentItem(item)
                self.note_list.blockSignals(False)
                return

    def _on_note_activated(self, item: QListWidgetItem) -> None:
        rel = item.data(Qt.UserRole)
        if rel and rel != self.editor.current_relative_path():
            self.open_note(rel)

    def _update_dirty_badge(self, dirty: bool) -> None:
        self._dirty_status_label.setText("Modified" if dirty else "")

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.save_current_note()
        super().closeEvent(event)
