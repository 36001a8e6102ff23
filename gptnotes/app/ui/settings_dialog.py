from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Tuple

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from gptnotes.app.config import MODEL_OPTIONS

if TYPE_CHECKING:
    from gptnotes.app.plugin import ChatPlugin


class ChatSettingTab(QWidget):
    """API key and model form; every edit is persisted immediately."""

    def __init__(self, plugin: "ChatPlugin", parent=None):
        super().__init__(parent)
        self.plugin = plugin
        self.display()

    def display(self) -> None:
        layout = QFormLayout(self)
        settings = self.plugin.settings

        self.api_key_edit = QLineEdit(settings.api_key)
        self.api_key_edit.setPlaceholderText("sk-...")
        self.api_key_edit.setEchoMode(QLineEdit.PasswordEchoOnEdit)
        self.api_key_edit.textChanged.connect(self._on_api_key_changed)
        layout.addRow("API Key", self.api_key_edit)
        layout.addRow("", self._description("Enter your OpenAI API key"))

        self.model_combo = QComboBox()
        for model_id, label in MODEL_OPTIONS.items():
            self.model_combo.addItem(label, model_id)
        index = self.model_combo.findData(settings.model)
        if index < 0:
            # Keep a persisted model that the dropdown does not offer.
            self.model_combo.addItem(settings.model, settings.model)
            index = self.model_combo.count() - 1
        self.model_combo.setCurrentIndex(index)
        self.model_combo.currentIndexChanged.connect(self._on_model_changed)
        layout.addRow("Model", self.model_combo)
        layout.addRow("", self._description("Choose the OpenAI model"))

    @staticmethod
    def _description(text: str) -> QLabel:
        label = QLabel(text)
        label.setStyleSheet("color: #888; font-size: 11px;")
        return label

    def _on_api_key_changed(self, value: str) -> None:
        self.plugin.settings.api_key = value
        self.plugin.save_settings()

    def _on_model_changed(self) -> None:
        model = self.model_combo.currentData()
        if not isinstance(model, str):
            return
        self.plugin.settings.model = model
        self.plugin.save_settings()


class SettingsDialog(QDialog):
    """Section list on the left, one page per registered settings tab on the right."""

    def __init__(self, tabs: List[Tuple[str, Callable[[], QWidget]]], parent=None):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.resize(520, 260)

        root_layout = QHBoxLayout(self)
        root_layout.setContentsMargins(10, 10, 10, 10)
        root_layout.setSpacing(12)

        self.section_list = QListWidget()
        self.section_list.setFixedWidth(160)
        self.section_list.setSpacing(2)
        root_layout.addWidget(self.section_list, 0)

        self.stack = QStackedWidget()
        right_container = QVBoxLayout()
        right_container.addWidget(self.stack, 1)
        btn_box = QDialogButtonBox(QDialogButtonBox.Close)
        btn_box.rejected.connect(self.reject)
        right_container.addWidget(btn_box, 0, Qt.AlignRight)
        wrapper = QWidget()
        wrapper.setLayout(right_container)
        root_layout.addWidget(wrapper, 1)

        self.pages: list[QWidget] = []
        for title, factory in tabs:
            self.section_list.addItem(QListWidgetItem(title))
            page = factory()
            self.pages.append(page)
            self.stack.addWidget(page)
        if self.section_list.count():
            self.section_list.setCurrentRow(0)
        self.section_list.currentRowChanged.connect(self.stack.setCurrentIndex)
