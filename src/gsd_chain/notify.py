"""Best-effort desktop notifications."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from typing import Protocol

logger = logging.getLogger(__name__)

NOTIFY_TIMEOUT_SECONDS = 4


class Notifier(Protocol):
    def __call__(self, title: str, message: str) -> bool: ...


def _applescript_quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def notification_command(title: str, message: str, *, platform: str | None = None) -> list[str] | None:
    """Return the argv that shows a notification on *platform*, if supported."""
    platform = platform or sys.platform
    if platform == "darwin":
        script = (
            f'display notification "{_applescript_quote(message)}" '
            f'with title "{_applescript_quote(title)}"'
        )
        return ["osascript", "-e", script]
    if platform.startswith("linux"):
        return ["notify-send", title, message]
    return None


class DesktopNotifier:
    """Shows a notification through the platform's command-line tool."""

    def __init__(self, *, platform: str | None = None) -> None:
        self.platform = platform

    def __call__(self, title: str, message: str) -> bool:
        cmd = notification_command(title, message, platform=self.platform)
        if cmd is None or shutil.which(cmd[0]) is None:
            logger.debug("No notification tool available on %s", self.platform or sys.platform)
            return False
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=NOTIFY_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("Notification failed: %s", exc)
            return False
        return proc.returncode == 0


class NullNotifier:
    def __call__(self, title: str, message: str) -> bool:
        return False
