"""Tests for the per-event debug trace."""

from __future__ import annotations

import logging
from pathlib import Path

from gsd_chain.debug_log import DebugLog


def test_reset_truncates_previous_trace(tmp_path: Path) -> None:
    log = DebugLog(tmp_path / "cache" / "gsd-auto-chain.log")
    log.write("old attempt")

    log.reset()
    log.write("Extracted command: /gsd-plan-phase 2")

    lines = log.read().splitlines()
    assert lines[0].startswith("=== GSD Auto-Chain Log Started ")
    assert len(lines) == 2
    assert lines[1].endswith("] Extracted command: /gsd-plan-phase 2")
    assert "old attempt" not in log.read()


def test_write_mirrors_to_logger(caplog, tmp_path: Path) -> None:
    log = DebugLog(tmp_path / "trace.log")

    with caplog.at_level(logging.INFO, logger="gsd_chain.debug_log"):
        log.write("Step 1: execute_command('/new')")

    assert "Step 1: execute_command('/new')" in caplog.text


def test_log_without_path_only_uses_logging(tmp_path: Path) -> None:
    log = DebugLog()

    log.reset()
    log.write("nothing on disk")

    assert log.read() == ""


def test_unwritable_path_is_swallowed(tmp_path: Path) -> None:
    blocked = tmp_path / "is-a-directory"
    blocked.mkdir()
    log = DebugLog(blocked)

    log.reset()
    log.write("still fine")
