"""Tests for host message helpers and the HTTP control client."""

from __future__ import annotations

import io
import json
import urllib.error

import pytest

import gsd_chain.host as host_module
from gsd_chain.host import HostError, HttpHostClient, last_assistant_message, message_text

pytestmark = pytest.mark.unit


def _turn(role: str, *parts: dict) -> dict:
    return {"info": {"role": role}, "parts": list(parts)}


def test_last_assistant_message_skips_trailing_user_turns() -> None:
    messages = [
        _turn("assistant", {"type": "text", "text": "first"}),
        _turn("assistant", {"type": "text", "text": "second"}),
        _turn("user", {"type": "text", "text": "thanks"}),
    ]

    assert message_text(last_assistant_message(messages)) == "second\n"


def test_last_assistant_message_accepts_flat_role() -> None:
    messages = [{"role": "assistant", "parts": [{"type": "text", "text": "flat"}]}]

    assert last_assistant_message(messages) is messages[0]


def test_last_assistant_message_none_without_assistant() -> None:
    assert last_assistant_message([_turn("user", {"type": "text", "text": "hi"})]) is None
    assert last_assistant_message([]) is None


def test_message_text_joins_only_text_parts() -> None:
    message = _turn(
        "assistant",
        {"type": "text", "text": "## Next Up"},
        {"type": "tool", "tool": "bash", "text": "ignored"},
        {"type": "text", "text": ""},
        {"type": "text", "text": "`/gsd-plan-phase 2`"},
    )

    assert message_text(message) == "## Next Up\n`/gsd-plan-phase 2`\n"


class _FakeResponse:
    def __init__(self, body: str) -> None:
        self._body = io.BytesIO(body.encode("utf-8"))

    def read(self) -> bytes:
        return self._body.read()

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *_exc) -> None:
        return None


def _capture_requests(monkeypatch: pytest.MonkeyPatch, body: str) -> list:
    captured: list = []

    def fake_urlopen(req, timeout):
        captured.append((req, timeout))
        return _FakeResponse(body)

    monkeypatch.setattr(host_module.urllib.request, "urlopen", fake_urlopen)
    return captured


def test_http_client_fetches_session_messages(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = [_turn("assistant", {"type": "text", "text": "hi"}), "junk"]
    captured = _capture_requests(monkeypatch, json.dumps(payload))
    client = HttpHostClient("http://127.0.0.1:4096/", timeout_s=5)

    messages = client.messages("ses/1")

    req, timeout = captured[0]
    assert req.full_url == "http://127.0.0.1:4096/session/ses%2F1/message"
    assert req.get_method() == "GET"
    assert timeout == 5
    assert messages == [payload[0]]


def test_http_client_control_calls_post_json(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture_requests(monkeypatch, "true")
    client = HttpHostClient("http://localhost:4096")

    assert client.execute_command("/new") is True
    client.append_prompt("/gsd-plan-phase 3")
    client.submit_prompt()

    urls = [req.full_url for req, _ in captured]
    assert urls == [
        "http://localhost:4096/tui/execute-command",
        "http://localhost:4096/tui/append-prompt",
        "http://localhost:4096/tui/submit-prompt",
    ]
    assert all(req.get_method() == "POST" for req, _ in captured)
    assert json.loads(captured[0][0].data) == {"command": "/new"}
    assert json.loads(captured[1][0].data) == {"text": "/gsd-plan-phase 3"}


def test_http_client_uses_server_url_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENCODE_SERVER_URL", "http://127.0.0.1:5000/")

    assert HttpHostClient().base_url == "http://127.0.0.1:5000"


def test_http_client_wraps_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(_req, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(host_module.urllib.request, "urlopen", refuse)

    with pytest.raises(HostError, match="connection refused"):
        HttpHostClient("http://127.0.0.1:1").submit_prompt()


def test_http_client_wraps_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def not_found(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 404, "Not Found", {}, None)

    monkeypatch.setattr(host_module.urllib.request, "urlopen", not_found)

    with pytest.raises(HostError, match="HTTP 404"):
        HttpHostClient("http://127.0.0.1:1").append_prompt("/gsd-plan-phase 1")


def test_http_client_rejects_invalid_json(monkeypatch: pytest.MonkeyPatch) -> None:
    _capture_requests(monkeypatch, "<html>")

    with pytest.raises(HostError, match="invalid JSON"):
        HttpHostClient("http://127.0.0.1:1").messages("ses_1")
