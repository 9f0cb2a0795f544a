"""Single-slot store for a command deferred to the next session.

Only one handoff exists at a time (last writer wins).  Reading it is a
claim: the record is removed by the read, so it is delivered at most once.
A record older than :data:`HANDOFF_TTL_MS` is treated as absent, although
it stays on disk until the next claim removes it.
"""

from __future__ import annotations

import abc
import json
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from gsd_chain.file_io import atomic_write_text, claim_file, read_and_remove
from gsd_chain.paths import pending_command_path
from gsd_chain.schemas import PendingHandoff

logger = logging.getLogger(__name__)

HANDOFF_TTL_MS = 5 * 60 * 1000

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


class HandoffStore(abc.ABC):
    """Common interface for pending-handoff storage."""

    def __init__(self, *, clock: Clock = epoch_ms, ttl_ms: int = HANDOFF_TTL_MS) -> None:
        self.clock = clock
        self.ttl_ms = ttl_ms

    @abc.abstractmethod
    def store(self, command: str) -> PendingHandoff:
        """Persist *command* with the current timestamp, replacing any record."""

    @abc.abstractmethod
    def _take(self) -> PendingHandoff | None:
        """Remove and return the raw record, expired or not."""

    @abc.abstractmethod
    def peek(self) -> PendingHandoff | None:
        """Return the raw record without consuming it."""

    def claim(self) -> str | None:
        """Consume the pending command; ``None`` when absent or expired."""
        record = self._take()
        if record is None:
            return None
        if record.is_expired(self.clock(), self.ttl_ms):
            logger.info(
                "Discarding expired pending command %s (age %d ms)",
                record.command,
                record.age_ms(self.clock()),
            )
            return None
        return record.command


class FileHandoffStore(HandoffStore):
    """Handoff record kept in a small JSON file."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        clock: Clock = epoch_ms,
        ttl_ms: int = HANDOFF_TTL_MS,
    ) -> None:
        super().__init__(clock=clock, ttl_ms=ttl_ms)
        self.path = Path(path) if path is not None else pending_command_path()

    def store(self, command: str) -> PendingHandoff:
        record = PendingHandoff(command=command, timestamp=self.clock())
        atomic_write_text(self.path, json.dumps(record.model_dump()))
        return record

    def _take(self) -> PendingHandoff | None:
        try:
            claimed = claim_file(self.path)
            if claimed is None:
                return None
            return PendingHandoff.model_validate_json(read_and_remove(claimed))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read pending command %s: %s", self.path, exc)
            return None

    def peek(self) -> PendingHandoff | None:
        if not self.path.is_file():
            return None
        try:
            return PendingHandoff.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read pending command %s: %s", self.path, exc)
            return None


class MemoryHandoffStore(HandoffStore):
    """In-process handoff slot."""

    def __init__(self, *, clock: Clock = epoch_ms, ttl_ms: int = HANDOFF_TTL_MS) -> None:
        super().__init__(clock=clock, ttl_ms=ttl_ms)
        self._lock = threading.Lock()
        self._record: PendingHandoff | None = None

    def store(self, command: str) -> PendingHandoff:
        record = PendingHandoff(command=command, timestamp=self.clock())
        with self._lock:
            self._record = record
        return record

    def _take(self) -> PendingHandoff | None:
        with self._lock:
            record, self._record = self._record, None
        return record

    def peek(self) -> PendingHandoff | None:
        with self._lock:
            return self._record
