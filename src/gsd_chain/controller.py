"""Continuation driver: chain the next workflow command after a step ends.

``session.idle``::

    Idle -> Extracting -> Deciding -> Executing  -> Idle
                                   \\-> Deferring -> Idle

Executing drives the host through three strictly ordered calls (new
session, append prompt, submit).  If any of them fails the command is
deferred instead: it is stored as the pending handoff and a desktop
notification is attempted.  ``session.created`` claims the pending handoff
and surfaces it for the human; it never submits anything itself.

No handler raises back to the host.  Every failure degrades to the next
safest behaviour and is written to the debug log.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any

from gsd_chain.config import resolve
from gsd_chain.debug_log import DebugLog
from gsd_chain.extractor import ANCHOR_PHRASE, extract_next_command
from gsd_chain.file_io import atomic_write_text
from gsd_chain.handoff import FileHandoffStore, HandoffStore
from gsd_chain.host import HostClient, HttpHostClient, last_assistant_message, message_text
from gsd_chain.notify import DesktopNotifier, Notifier, NullNotifier
from gsd_chain.paths import auto_input_path, debug_log_path
from gsd_chain.policy import decide
from gsd_chain.schemas import ChainOutcome, ChainReport, HostEvent, ResolvedConfig

logger = logging.getLogger(__name__)

SESSION_CREATED = "session.created"
SESSION_IDLE = "session.idle"

DEFAULT_SETTLE_DELAY_SECONDS = 1.5
NEW_SESSION_COMMAND = "/new"
NOTIFICATION_TITLE = "GSD Auto-Chain"

ConfigResolver = Callable[[Path, str], ResolvedConfig]


class ChainController:
    """Handles host session events and chains suggested commands."""

    def __init__(
        self,
        host: HostClient,
        project_dir: str | Path,
        *,
        store: HandoffStore | None = None,
        debug_log: DebugLog | None = None,
        notifier: Notifier | None = None,
        input_path: str | Path | None = None,
        settle_delay_s: float = DEFAULT_SETTLE_DELAY_SECONDS,
        new_session_command: str = NEW_SESSION_COMMAND,
        config_resolver: ConfigResolver = resolve,
    ) -> None:
        self.host = host
        self.project_dir = Path(project_dir)
        self.store = store if store is not None else FileHandoffStore()
        self.debug_log = debug_log if debug_log is not None else DebugLog()
        self.notifier = notifier if notifier is not None else NullNotifier()
        self.input_path = Path(input_path) if input_path is not None else None
        self.settle_delay_s = max(0.0, float(settle_delay_s))
        self.new_session_command = new_session_command
        self.config_resolver = config_resolver

    @classmethod
    def from_environment(
        cls,
        project_dir: str | Path,
        *,
        server_url: str | None = None,
    ) -> ChainController:
        """Build a controller wired to the real host, files and notifier."""
        return cls(
            HttpHostClient(server_url),
            project_dir,
            store=FileHandoffStore(),
            debug_log=DebugLog(debug_log_path()),
            notifier=DesktopNotifier(),
            input_path=auto_input_path(),
        )

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    async def handle_event(self, event: HostEvent | dict[str, Any]) -> ChainReport | str | None:
        """Dispatch one host event; unknown event types are ignored."""
        try:
            parsed = event if isinstance(event, HostEvent) else HostEvent.model_validate(event)
        except Exception as exc:
            logger.warning("Ignoring malformed host event: %s", exc)
            return None
        if parsed.type == SESSION_CREATED:
            return await self.handle_created()
        if parsed.type == SESSION_IDLE:
            return await self.handle_idle(parsed.session_id)
        return None

    async def handle_created(self) -> str | None:
        """Claim the pending handoff, if any, and surface it for the human."""
        try:
            pending = self.store.claim()
        except Exception as exc:
            self._trace(f"Could not claim pending command: {exc}", level=logging.WARNING)
            return None
        if not pending:
            return None

        self._trace(f"Found pending command: {pending}")
        if self.input_path is not None:
            try:
                atomic_write_text(self.input_path, pending)
                self._trace(f"Saved to: {self.input_path}")
            except OSError as exc:
                self._trace(f"Could not write {self.input_path}: {exc}", level=logging.WARNING)
        self._trace(f"Please run: {pending}")
        return pending

    async def handle_idle(self, session_id: str) -> ChainReport:
        """Run one extract / decide / continue cycle for *session_id*."""
        self.debug_log.reset()
        try:
            return await self._handle_idle(session_id)
        except Exception as exc:
            self._trace(f"Unexpected error: {exc}", level=logging.WARNING)
            self._trace(traceback.format_exc(), level=logging.DEBUG)
            return self._report(ChainOutcome.NO_COMMAND_FOUND, session_id, reason=f"internal error: {exc}")

    # ------------------------------------------------------------------
    # Idle pipeline
    # ------------------------------------------------------------------

    async def _handle_idle(self, session_id: str) -> ChainReport:
        if not session_id:
            self._trace("No sessionID in event")
            return self._report(ChainOutcome.NO_COMMAND_FOUND, session_id, reason="missing session id")

        text, reason = await self._fetch_assistant_text(session_id)
        if not text:
            return self._report(ChainOutcome.NO_COMMAND_FOUND, session_id, reason=reason)

        self._trace(f"Content length: {len(text)}")
        self._trace(f'Contains "Next Up": {ANCHOR_PHRASE in text.lower()}')

        command = extract_next_command(text)
        self._trace(f"Extracted command: {command or 'none'}")
        if not command:
            return self._report(ChainOutcome.NO_COMMAND_FOUND, session_id, reason="no command in output")

        resolved = self.config_resolver(self.project_dir, text)
        self._trace(f"skipDiscuss: {resolved.skip_discuss} ({resolved.skip_discuss_source.value})")

        decision = decide(command, text, resolved)
        if decision.command != command:
            self._trace(f"Transformed to: {decision.command}")
        if not decision.run:
            self._trace(f"Skipping ({decision.reason}): {decision.command}")
            return self._report(ChainOutcome.INELIGIBLE, session_id, decision.command, decision.reason)
        if decision.confirm_only:
            self._trace(f"Would execute: {decision.command}")
            return self._report(
                ChainOutcome.CONFIRM_ONLY_REPORTED,
                session_id,
                decision.command,
                "confirmBeforeChain is enabled",
            )

        if resolved.settings.auto_chain:
            if await self._continue_live(decision.command):
                self._trace(f"Auto-chained: {decision.command}")
                return self._report(ChainOutcome.AUTO_CONTINUED, session_id, decision.command)
            reason = "live continuation failed"
        else:
            self._trace("Auto-chain disabled via config; deferring")
            reason = "autoChain disabled"

        await self._defer(decision.command, resolved.settings.auto_chain_delay_ms)
        return self._report(ChainOutcome.DEFERRED, session_id, decision.command, reason)

    async def _fetch_assistant_text(self, session_id: str) -> tuple[str, str]:
        try:
            messages = await asyncio.to_thread(self.host.messages, session_id)
        except Exception as exc:
            self._trace(f"Error fetching messages: {exc}", level=logging.WARNING)
            return "", "message fetch failed"
        if not messages:
            self._trace("No messages in session")
            return "", "no messages"
        assistant = last_assistant_message(messages)
        if assistant is None:
            self._trace("No assistant message found")
            return "", "no assistant message"
        text = message_text(assistant)
        if not text:
            self._trace("No text content in assistant message")
            return "", "no text content"
        return text, ""

    async def _continue_live(self, command: str) -> bool:
        """Open a fresh session and submit *command* in it.

        A partially completed sequence is not rolled back.
        """
        self._trace("=== Attempting auto-execute ===")
        try:
            self._trace(f"Step 1: execute_command({self.new_session_command!r})")
            response = await asyncio.to_thread(self.host.execute_command, self.new_session_command)
            self._trace(f"  Response: {response!r}")

            self._trace(f"Step 2: waiting {self.settle_delay_s:.2f}s for session")
            await asyncio.sleep(self.settle_delay_s)

            self._trace(f"Step 3: append_prompt({command!r})")
            response = await asyncio.to_thread(self.host.append_prompt, command)
            self._trace(f"  Response: {response!r}")

            self._trace("Step 4: submit_prompt()")
            response = await asyncio.to_thread(self.host.submit_prompt)
            self._trace(f"  Response: {response!r}")
        except Exception as exc:
            self._trace(f"Auto-execute error: {exc}", level=logging.WARNING)
            self._trace(f"Error stack: {traceback.format_exc()}", level=logging.DEBUG)
            return False
        finally:
            self._trace("=== End auto-execute attempt ===")
        return True

    async def _defer(self, command: str, delay_ms: int) -> None:
        self._trace(f"Storing for next session: {command}")
        try:
            self.store.store(command)
        except (OSError, ValueError) as exc:
            self._trace(f"Could not store pending command: {exc}", level=logging.WARNING)

        await asyncio.sleep(max(0, delay_ms) / 1000)

        try:
            shown = self.notifier(NOTIFICATION_TITLE, f"Ready: {command}")
        except Exception as exc:
            logger.debug("Notification failed: %s", exc)
            shown = False
        self._trace(f"Notification {'sent' if shown else 'not shown'}")
        self._trace(f"Run {self.new_session_command} and then: {command}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _trace(self, message: str, *, level: int = logging.INFO) -> None:
        self.debug_log.write(message, level=level)

    @staticmethod
    def _report(
        outcome: ChainOutcome,
        session_id: str,
        command: str | None = None,
        reason: str = "",
    ) -> ChainReport:
        return ChainReport(outcome=outcome, command=command, reason=reason, session_id=session_id or "")
