"""Small-file helpers: atomic writes and claim-by-rename."""

from __future__ import annotations

import errno
import os
import tempfile
import threading
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path

MOVE_ATTEMPTS = 8
MOVE_BACKOFF_SECONDS = 0.01

_LOCKS_GUARD = threading.Lock()
_LOCKS: dict[str, threading.RLock] = {}


def _lock_for(path: Path) -> threading.RLock:
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(os.path.realpath(path), threading.RLock())


@contextmanager
def locked_path(path: Path) -> Iterator[None]:
    """Hold the in-process lock for *path*; aliases of one file share it."""
    with _lock_for(path):
        yield


def _is_sharing_violation(exc: OSError) -> bool:
    return isinstance(exc, PermissionError) or exc.errno == errno.EACCES


def _move(src: Path, dst: Path, *, overwrite: bool) -> None:
    """Rename *src* to *dst*, backing off while another process holds a handle.

    Only access-denied errors are retried; anything else, including a
    missing *src*, is raised on the first attempt.
    """
    for attempt in range(1, MOVE_ATTEMPTS + 1):
        try:
            if overwrite:
                src.replace(dst)
            else:
                src.rename(dst)
            return
        except OSError as exc:
            if attempt == MOVE_ATTEMPTS or not _is_sharing_violation(exc):
                raise
        time.sleep(MOVE_BACKOFF_SECONDS * attempt)


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text so readers see either the old file or the new one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    staged: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=encoding,
            dir=path.parent,
            prefix=f"{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            staged = Path(handle.name)
            handle.write(content)
        with locked_path(path):
            _move(staged, path, overwrite=True)
    finally:
        if staged is not None:
            with suppress(OSError):
                staged.unlink(missing_ok=True)


def claim_file(path: Path) -> Path | None:
    """Move *path* to a private name and return it, or ``None`` if absent.

    Rename is atomic, so when several processes race for the same file
    exactly one of them gets it.  The caller owns the returned file and
    must delete it.
    """
    claimed = path.with_name(f"{path.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}.claimed")
    try:
        with locked_path(path):
            _move(path, claimed, overwrite=False)
    except FileNotFoundError:
        return None
    return claimed


def read_and_remove(path: Path, *, encoding: str = "utf-8") -> str:
    """Read a claimed file and delete it, even when reading fails."""
    try:
        return path.read_text(encoding=encoding)
    finally:
        with suppress(OSError):
            path.unlink(missing_ok=True)
