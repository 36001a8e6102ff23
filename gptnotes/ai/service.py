from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from gptnotes.app import config
from gptnotes.app.config import PluginSettings

logger = logging.getLogger(__name__)

API_URL = "https://api.openai.com/v1/chat/completions"

NO_API_KEY_RESPONSE = "Error: No API Key"
INVALID_RESPONSE = "Error: invalid response from OpenAI"
MISSING_KEY_NOTICE = "Set your API key in the plugin settings."


class CompletionError(RuntimeError):
    pass


class MissingApiKeyError(CompletionError):
    pass


class InvalidResponseError(CompletionError):
    pass


def is_error_response(text: Optional[str]) -> bool:
    return not text or text.startswith("Error")


def build_api_request(settings: PluginSettings, messages: list[dict], timeout: float):
    if not settings.api_key:
        raise MissingApiKeyError("No API key configured.")
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.api_key}",
    }
    payload = {"model": settings.model, "messages": messages}
    return API_URL, headers, timeout, payload


def extract_content(data: object) -> str:
    """Pull ``choices[0].message.content`` out of a completion body, or ''."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice = choices[0]
    if not isinstance(choice, dict):
        return ""
    message = choice.get("message") or {}
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


class GPTService:
    """Sends chat message lists to the OpenAI completions endpoint."""

    def __init__(
        self,
        settings_provider: Callable[[], PluginSettings],
        notify: Optional[Callable[[str], None]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings_provider = settings_provider
        self._notify = notify
        self._transport = transport

    def complete(self, messages: list[dict]) -> str:
        settings = self._settings_provider()
        url, headers, timeout, payload = build_api_request(
            settings, messages, config.load_request_timeout()
        )
        logger.debug("Sending payload to OpenAI: %s", payload)
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as client:
                resp = client.post(url, json=payload, headers=headers)
                logger.debug("OpenAI response status %s", resp.status_code)
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CompletionError(f"request to OpenAI failed ({exc})") from exc
        content = extract_content(data)
        if not content:
            logger.warning("Unexpected completion body: %s", str(data)[:500])
            raise InvalidResponseError("invalid response from OpenAI")
        return content

    def fetch_response(self, messages: list[dict], notify: Optional[Callable[[str], None]] = None) -> str:
        """Return the assistant reply, or an ``Error: ...`` string on failure."""
        try:
            return self.complete(messages)
        except MissingApiKeyError:
            callback = notify or self._notify
            if callback:
                callback(MISSING_KEY_NOTICE)
            return NO_API_KEY_RESPONSE
        except InvalidResponseError:
            return INVALID_RESPONSE
        except CompletionError as exc:
            logger.warning("Completion failed: %s", exc)
            return f"Error: {exc}"
