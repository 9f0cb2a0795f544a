"""Host collaborators: message history and the prompt control surface."""

from __future__ import annotations

import abc
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

logger = logging.getLogger(__name__)

SERVER_URL_ENV = "OPENCODE_SERVER_URL"
DEFAULT_SERVER_URL = "http://127.0.0.1:4096"
DEFAULT_TIMEOUT_SECONDS = 30.0


class HostError(RuntimeError):
    """Raised when a host call fails or returns something unusable."""


class HostClient(abc.ABC):
    """What the controller needs from the host runtime.

    Each control call depends on the side effect of the previous one, so
    callers must issue them strictly in order.
    """

    @abc.abstractmethod
    def messages(self, session_id: str) -> list[dict[str, Any]]:
        """Return the ordered turns of *session_id*."""

    @abc.abstractmethod
    def execute_command(self, command: str) -> Any:
        """Run a host command such as ``/new`` (create a fresh session)."""

    @abc.abstractmethod
    def append_prompt(self, text: str) -> Any:
        """Insert *text* into the current session's input."""

    @abc.abstractmethod
    def submit_prompt(self) -> Any:
        """Submit the current input."""


class HttpHostClient(HostClient):
    """Client for the opencode server's local HTTP API."""

    def __init__(self, base_url: str | None = None, *, timeout_s: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        raw = base_url or os.getenv(SERVER_URL_ENV, "") or DEFAULT_SERVER_URL
        self.base_url = raw.strip().rstrip("/")
        self.timeout_s = timeout_s

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        data = json.dumps(payload).encode() if payload is not None else None
        headers = {"Accept": "application/json"}
        if data is not None:
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                body = resp.read().decode("utf-8", errors="ignore")
        except urllib.error.HTTPError as exc:
            raise HostError(f"{method} {path} failed with HTTP {exc.code}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise HostError(f"{method} {path} failed: {exc}") from exc
        if not body.strip():
            return None
        try:
            return json.loads(body)
        except ValueError as exc:
            raise HostError(f"{method} {path} returned invalid JSON") from exc

    def messages(self, session_id: str) -> list[dict[str, Any]]:
        quoted = urllib.parse.quote(session_id, safe="")
        data = self._request("GET", f"/session/{quoted}/message")
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    def execute_command(self, command: str) -> Any:
        return self._request("POST", "/tui/execute-command", {"command": command})

    def append_prompt(self, text: str) -> Any:
        return self._request("POST", "/tui/append-prompt", {"text": text})

    def submit_prompt(self) -> Any:
        return self._request("POST", "/tui/submit-prompt", {})


def _message_role(message: dict[str, Any]) -> str:
    info = message.get("info")
    if isinstance(info, dict) and isinstance(info.get("role"), str):
        return info["role"]
    role = message.get("role")
    return role if isinstance(role, str) else ""


def last_assistant_message(messages: list[dict[str, Any]]) -> dict[str, Any] | None:
    for message in reversed(messages):
        if _message_role(message) == "assistant":
            return message
    return None


def message_text(message: dict[str, Any]) -> str:
    """Concatenate the text parts of *message*, one line break after each."""
    chunks: list[str] = []
    for part in message.get("parts") or []:
        if not isinstance(part, dict) or part.get("type") != "text":
            continue
        text = part.get("text")
        if isinstance(text, str) and text:
            chunks.append(text + "\n")
    return "".join(chunks)
