import json

import httpx
import pytest

from gptnotes.ai import service
from gptnotes.ai.service import (
    API_URL,
    INVALID_RESPONSE,
    MISSING_KEY_NOTICE,
    NO_API_KEY_RESPONSE,
    GPTService,
    InvalidResponseError,
    MissingApiKeyError,
    extract_content,
    is_error_response,
)
from gptnotes.app import config
from gptnotes.app.config import PluginSettings

MESSAGES = [{"role": "user", "content": "Hi"}]


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _service(handler, settings=None, notify=None):
    settings = settings or PluginSettings(api_key="sk-test", model="o3")
    return GPTService(lambda: settings, notify=notify, transport=httpx.MockTransport(handler))


def test_fetch_response_posts_model_and_messages():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["method"] = request.method
        seen["auth"] = request.headers.get("authorization")
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("Hello there"))

    assert _service(handler).fetch_response(MESSAGES) == "Hello there"
    assert seen["url"] == API_URL
    assert seen["method"] == "POST"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["content_type"] == "application/json"
    assert seen["body"] == {"model": "o3", "messages": MESSAGES}


def test_missing_api_key_notifies_without_network():
    notices = []

    def handler(request):
        pytest.fail("no request expected without an API key")

    svc = _service(handler, settings=PluginSettings(api_key=""), notify=notices.append)
    assert svc.fetch_response(MESSAGES) == NO_API_KEY_RESPONSE
    assert notices == [MISSING_KEY_NOTICE]


def test_per_call_notify_overrides_default():
    default, per_call = [], []
    svc = _service(lambda r: httpx.Response(200), settings=PluginSettings(), notify=default.append)
    svc.fetch_response(MESSAGES, notify=per_call.append)
    assert default == []
    assert per_call == [MISSING_KEY_NOTICE]


def test_complete_raises_for_missing_key():
    svc = _service(lambda r: httpx.Response(200), settings=PluginSettings())
    with pytest.raises(MissingApiKeyError):
        svc.complete(MESSAGES)


@pytest.mark.parametrize(
    "body",
    [
        {"error": {"message": "Incorrect API key provided"}},
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": None}]},
    ],
)
def test_unusable_body_returns_generic_error(body):
    svc = _service(lambda r: httpx.Response(401, json=body))
    assert svc.fetch_response(MESSAGES) == INVALID_RESPONSE
    with pytest.raises(InvalidResponseError):
        svc.complete(MESSAGES)


def test_transport_failure_is_surfaced_as_error_string():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = _service(handler).fetch_response(MESSAGES)
    assert result.startswith("Error: request to OpenAI failed")
    assert "connection refused" in result


def test_non_json_body_is_surfaced_as_error_string():
    result = _service(lambda r: httpx.Response(502, text="<html>Bad gateway</html>")).fetch_response(MESSAGES)
    assert is_error_response(result)


def test_request_uses_configured_timeout():
    seen = {}

    def handler(request):
        seen["timeout"] = request.extensions.get("timeout")
        return httpx.Response(200, json=_completion("ok"))

    config._update_global_config({"request_timeout": 7})
    _service(handler).fetch_response(MESSAGES)
    assert seen["timeout"]["read"] == 7


def test_extract_content_handles_odd_shapes():
    assert extract_content(_completion("x")) == "x"
    assert extract_content([]) == ""
    assert extract_content({"choices": ["nope"]}) == ""
    assert extract_content({"choices": [{"message": {"content": 3}}]}) == ""


def test_is_error_response():
    assert is_error_response("")
    assert is_error_response(None)
    assert is_error_response("Error: No API Key")
    assert not is_error_response("All good")
    assert service.NO_API_KEY_RESPONSE.startswith("Error")
