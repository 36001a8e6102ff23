from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

GLOBAL_CONFIG = Path.home() / ".gptnotes_config.json"

PLUGIN_KEY = "plugin"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_REQUEST_TIMEOUT = 120.0

# Offered in the settings dropdown; the default model is intentionally not listed.
MODEL_OPTIONS: dict[str, str] = {
    "o3": "o3",
    "o4-mini": "o4-mini",
    "gpt-4.1": "GPT-4.1",
    "chatgpt-4o-latest": "ChatGPT",
}


@dataclass
class PluginSettings:
    api_key: str = ""
    model: str = DEFAULT_MODEL


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    """Merge updates into global config file."""
    existing = _read_global_config()
    existing.update(updates)
    GLOBAL_CONFIG.write_text(json.dumps(existing, indent=2), encoding="utf-8")


def load_settings() -> PluginSettings:
    """Return plugin settings with persisted values layered over the defaults."""
    settings = PluginSettings()
    stored = _read_global_config().get(PLUGIN_KEY)
    if not isinstance(stored, dict):
        return settings
    for key in ("api_key", "model"):
        value = stored.get(key)
        if isinstance(value, str):
            setattr(settings, key, value)
    return settings


def save_settings(settings: PluginSettings) -> None:
    _update_global_config({PLUGIN_KEY: asdict(settings)})


def load_api_key() -> str:
    return load_settings().api_key


def save_api_key(api_key: str) -> None:
    settings = load_settings()
    settings.api_key = api_key
    save_settings(settings)


def load_model() -> str:
    return load_settings().model


def save_model(model: str) -> None:
    settings = load_settings()
    settings.model = model or DEFAULT_MODEL
    save_settings(settings)


def load_request_timeout() -> float:
    """Seconds to wait for a completion before giving up."""
    raw = _read_global_config().get("request_timeout")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_REQUEST_TIMEOUT
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT


def load_last_vault() -> Optional[str]:
    payload = _read_global_config()
    last = payload.get("last_vault")
    return last if isinstance(last, str) else None


def save_last_vault(path: str) -> None:
    _update_global_config({"last_vault": path})


def load_chat_font_size(default: int = 13) -> int:
    """Load the chat panel font size (clamped to 6..24)."""
    payload = _read_global_config()
    try:
        val = int(payload.get("chat_font_size", default))
    except (TypeError, ValueError):
        return default
    return max(6, min(24, val))


def save_chat_font_size(size: int) -> None:
    try:
        val = int(size)
    except (TypeError, ValueError):
        val = 13
    val = max(6, min(24, val))
    _update_global_config({"chat_font_size": val})
