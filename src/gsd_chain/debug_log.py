"""Per-event diagnostic trace.

The trace file is truncated at the start of every idle event, so it always
describes the latest continuation attempt.  Every line is mirrored to the
module logger.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path

from gsd_chain.file_io import locked_path

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class DebugLog:
    """Session-scoped trace written to *path* (or only to logging if ``None``)."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None

    def reset(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with locked_path(self.path):
                self.path.write_text(
                    f"=== GSD Auto-Chain Log Started {_now_iso()} ===\n",
                    encoding="utf-8",
                )
        except OSError as exc:
            logger.debug("Could not reset debug log %s: %s", self.path, exc)

    def write(self, message: str, *, level: int = logging.INFO) -> None:
        logger.log(level, message)
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with locked_path(self.path), self.path.open("a", encoding="utf-8") as handle:
                handle.write(f"[{_now_iso()}] {message}\n")
        except OSError as exc:
            logger.debug("Could not append to debug log %s: %s", self.path, exc)

    def read(self) -> str:
        if self.path is None or not self.path.is_file():
            return ""
        return self.path.read_text(encoding="utf-8")
