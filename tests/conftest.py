import pytest

from gptnotes.app import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the global config file at a per-test location."""
    path = tmp_path / "gptnotes_config.json"
    monkeypatch.setattr(config, "GLOBAL_CONFIG", path)
    return path


class FakeService:
    """Stands in for GPTService; records payloads and returns a canned reply."""

    def __init__(self, reply="Sure thing.", notice=None):
        self.reply = reply
        self.notice = notice
        self.calls = []

    def fetch_response(self, messages, notify=None):
        self.calls.append([dict(m) for m in messages])
        if self.notice and notify:
            notify(self.notice)
        return self.reply


@pytest.fixture
def fake_service():
    return FakeService()
