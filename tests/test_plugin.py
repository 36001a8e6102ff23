import datetime as dt

import httpx
import pytest

from gptnotes.ai.service import MISSING_KEY_NOTICE, NO_API_KEY_RESPONSE, GPTService
from gptnotes.app import config
from gptnotes.app.plugin import AUTOCOMPLETE_COMMAND_ID, ChatPlugin
from gptnotes.app.ui.chat_panel import VIEW_TYPE
from gptnotes.app.ui.main_window import MainWindow
from gptnotes.app.ui.markdown_editor import EditorPosition


@pytest.fixture
def window(qtbot, tmp_path):
    win = MainWindow()
    qtbot.addWidget(win)
    win.set_vault(str(tmp_path))
    return win


@pytest.fixture
def plugin(window, fake_service):
    plug = ChatPlugin(window, service=fake_service)
    window.load_plugin(plug)
    return plug


def _open_note(window, tmp_path, text, rel="Note.md"):
    (tmp_path / rel).write_text(text, encoding="utf-8")
    window.open_note(rel)


def _status(window):
    return window.statusBar().currentMessage()


def test_on_load_registers_host_entries(window, plugin):
    tooltips = [action.toolTip() for action in window.ribbon.actions()]
    assert tooltips == ["Open Chat", "Create Daily Note"]
    assert window.commands_menu.actions()[0].text() == "Autocomplete with AI"
    assert window.get_views_of_type(VIEW_TYPE) == []
    with pytest.raises(ValueError):
        window.add_command(AUTOCOMPLETE_COMMAND_ID, "dup", lambda: None)


def test_on_load_reads_persisted_settings(window):
    config.save_settings(config.PluginSettings(api_key="sk-saved", model="o3"))
    plug = ChatPlugin(window)
    window.load_plugin(plug)
    assert plug.settings.api_key == "sk-saved"
    assert plug.settings.model == "o3"
    assert isinstance(plug.gpt_service, GPTService)


def test_activate_chat_view_reuses_existing_panel(window, plugin):
    first = plugin.activate_chat_view()
    second = plugin.activate_chat_view()
    assert first is second
    assert window.right_tabs.count() == 1
    assert window.right_tabs.tabText(0) == "Chat with GPT"
    assert not window.right_dock.isHidden()


def test_ribbon_opens_chat(window, plugin):
    window.ribbon.actions()[0].trigger()
    assert len(window.get_views_of_type(VIEW_TYPE)) == 1


def test_autocomplete_inserts_after_cursor(qtbot, window, tmp_path, plugin, fake_service):
    _open_note(window, tmp_path, "The quick brown fox")
    fake_service.reply = "jumps over the lazy dog."
    assert window.execute_command(AUTOCOMPLETE_COMMAND_ID)
    qtbot.waitUntil(lambda: _status(window) == "Text autocompleted with AI.", timeout=3000)

    assert window.editor.get_value() == "The quick brown fox\njumps over the lazy dog."
    messages = fake_service.calls[0]
    assert [m["role"] for m in messages] == ["system", "user"]
    assert messages[1]["content"] == "The quick brown fox"


def test_autocomplete_only_uses_text_before_cursor(qtbot, window, tmp_path, plugin, fake_service):
    _open_note(window, tmp_path, "line one\nline two")
    editor = window.editor
    editor.replace_range("", EditorPosition(0, 8))
    fake_service.reply = "middle"
    plugin.autocomplete_with_ai()
    qtbot.waitUntil(lambda: _status(window) == "Text autocompleted with AI.", timeout=3000)

    assert fake_service.calls[0][1]["content"] == "line one"
    assert editor.get_value() == "line one\nmiddle\nline two"


def test_autocomplete_error_leaves_document(qtbot, window, tmp_path, plugin, fake_service):
    _open_note(window, tmp_path, "Draft")
    fake_service.reply = "Error: invalid response from OpenAI"
    plugin.autocomplete_with_ai()
    qtbot.waitUntil(
        lambda: _status(window) == "There was a problem getting the AI response.", timeout=3000
    )
    assert window.editor.get_value() == "Draft"


def test_autocomplete_empty_note(window, tmp_path, plugin, fake_service):
    _open_note(window, tmp_path, "  \n ")
    plugin.autocomplete_with_ai()
    assert _status(window) == "The editor is empty. Write something before autocompleting."
    assert fake_service.calls == []


def test_autocomplete_without_editor(window, plugin, fake_service):
    plugin.autocomplete_with_ai()
    assert _status(window) == "No active editor found."
    assert fake_service.calls == []


def test_missing_key_notice_reaches_status_bar(qtbot, window, tmp_path, monkeypatch):
    def _fail(*_args, **_kwargs):
        raise AssertionError("no network expected")

    monkeypatch.setattr(httpx.Client, "post", _fail)
    plug = ChatPlugin(window)
    window.load_plugin(plug)
    _open_note(window, tmp_path, "Some text")
    results = []
    plug.request_completion([{"role": "user", "content": "hi"}], results.append)
    qtbot.waitUntil(lambda: results == [NO_API_KEY_RESPONSE], timeout=3000)
    qtbot.waitUntil(lambda: _status(window) == MISSING_KEY_NOTICE, timeout=3000)


def test_worker_crash_becomes_error_string(qtbot, window, plugin, fake_service):
    def _boom(messages, notify=None):
        raise RuntimeError("boom")

    fake_service.fetch_response = _boom
    results = []
    plugin.request_completion([{"role": "user", "content": "hi"}], results.append)
    qtbot.waitUntil(lambda: results == ["Error: boom"], timeout=3000)


def test_create_daily_note_opens_note(window, tmp_path, plugin):
    note = plugin.create_daily_note(dt.date(2024, 3, 5))
    expected = tmp_path.resolve() / "2024" / "2024-03" / "2024-03-05" / "2024-03-05.md"
    assert note == expected
    assert note.read_text(encoding="utf-8") == "# 2024-03-05\n\n"
    assert window.editor.current_relative_path() == "2024/2024-03/2024-03-05/2024-03-05.md"


def test_create_daily_note_keeps_existing_content(window, tmp_path, plugin):
    day = dt.date(2024, 3, 5)
    target = tmp_path / "2024" / "2024-03" / "2024-03-05" / "2024-03-05.md"
    target.parent.mkdir(parents=True)
    target.write_text("already here", encoding="utf-8")
    plugin.create_daily_note(day)
    assert window.editor.get_value() == "already here"


def test_create_daily_note_without_vault(qtbot, fake_service):
    win = MainWindow()
    qtbot.addWidget(win)
    plug = ChatPlugin(win, service=fake_service)
    win.load_plugin(plug)
    assert plug.create_daily_note() is None
    assert _status(win) == "Open a vault before creating a daily note."


def test_settings_tab_saves_on_change(window, plugin):
    dialog = window.open_settings(modal=False)
    tab = dialog.pages[0]
    assert dialog.section_list.item(0).text() == "GPT Chat"

    tab.api_key_edit.setText("sk-new")
    assert config.load_api_key() == "sk-new"
    assert plugin.settings.api_key == "sk-new"

    tab.model_combo.setCurrentIndex(tab.model_combo.findData("gpt-4.1"))
    assert config.load_model() == "gpt-4.1"
    assert plugin.settings.model == "gpt-4.1"
    dialog.close()


def test_settings_tab_keeps_unlisted_model(window, plugin):
    dialog = window.open_settings(modal=False)
    tab = dialog.pages[0]
    assert tab.model_combo.currentData() == "gpt-4o"
    assert tab.model_combo.count() == 5
    dialog.close()


def test_autocomplete_dropped_when_note_changes(window, tmp_path, plugin, monkeypatch):
    pending = []
    monkeypatch.setattr(plugin, "request_completion", lambda messages, done: pending.append(done))
    (tmp_path / "B.md").write_text("Private B", encoding="utf-8")
    _open_note(window, tmp_path, "Draft A", rel="A.md")
    plugin.autocomplete_with_ai()
    window.open_note("B.md")

    pending[0]("continuation")
    assert window.editor.get_value() == "Private B"
    assert not window.editor.is_dirty()
    assert _status(window) == "The note changed before the AI response arrived; nothing was inserted."


def test_create_daily_note_reports_filesystem_error(window, tmp_path, plugin):
    (tmp_path / "2024").write_text("not a folder", encoding="utf-8")
    assert plugin.create_daily_note(dt.date(2024, 3, 5)) is None
    assert _status(window).startswith("Could not create daily note:")
    assert window.editor.current_relative_path() is None
