"""Decide whether an extracted command may run unattended."""

from __future__ import annotations

from pathlib import Path

from gsd_chain.config import resolve
from gsd_chain.directives import contains_no_chain_directive
from gsd_chain.schemas import ChainDecision, ResolvedConfig

PLAN_PHASE = "/gsd-plan-phase"
EXECUTE_PHASE = "/gsd-execute-phase"
DISCUSS_PHASE = "/gsd-discuss-phase"
AUDIT_MILESTONE = "/gsd-audit-milestone"
COMPLETE_MILESTONE = "/gsd-complete-milestone"
ADD_PHASE = "/gsd-add-phase"
INSERT_PHASE = "/gsd-insert-phase"
VERIFY_WORK = "/gsd-verify-work"
NEW_PROJECT = "/gsd-new-project"
NEW_MILESTONE = "/gsd-new-milestone"

KNOWN_COMMANDS: tuple[str, ...] = (
    PLAN_PHASE,
    EXECUTE_PHASE,
    DISCUSS_PHASE,
    AUDIT_MILESTONE,
    COMPLETE_MILESTONE,
    ADD_PHASE,
    INSERT_PHASE,
    VERIFY_WORK,
    NEW_PROJECT,
    NEW_MILESTONE,
)

# Commands that need a human at the keyboard.
INTERACTIVE_COMMANDS: tuple[str, ...] = (VERIFY_WORK, NEW_PROJECT, NEW_MILESTONE)

INTERMEDIATE_STEP = DISCUSS_PHASE
SUBSEQUENT_STEP = PLAN_PHASE


def is_interactive(command: str) -> bool:
    """Return True when *command* is on the interactive deny list."""
    return any(command.startswith(prefix) for prefix in INTERACTIVE_COMMANDS)


def skip_intermediate_step(command: str) -> str:
    """Rewrite a discuss step into the plan step, keeping its argument."""
    if not command.startswith(INTERMEDIATE_STEP):
        return command
    argument = command[len(INTERMEDIATE_STEP) :].strip()
    return f"{SUBSEQUENT_STEP} {argument}".strip()


def decide(command: str, text: str, resolved: ResolvedConfig) -> ChainDecision:
    """Apply directives, the skip-discuss rewrite and the deny list."""
    confirm_only = resolved.settings.confirm_before_chain
    if not command:
        return ChainDecision(run=False, reason="no command", confirm_only=confirm_only)
    if contains_no_chain_directive(text):
        return ChainDecision(
            run=False,
            command=command,
            reason="no-chain directive",
            confirm_only=confirm_only,
        )

    reason = "eligible"
    if resolved.skip_discuss:
        rewritten = skip_intermediate_step(command)
        if rewritten != command:
            reason = f"rewritten from {command} (skipDiscuss via {resolved.skip_discuss_source.value})"
            command = rewritten

    if is_interactive(command):
        return ChainDecision(
            run=False,
            command=command,
            reason="interactive command",
            confirm_only=confirm_only,
        )
    return ChainDecision(run=True, command=command, reason=reason, confirm_only=confirm_only)


def decide_for_project(command: str, text: str, project_dir: str | Path) -> ChainDecision:
    """Resolve configuration for *project_dir* and then :func:`decide`."""
    return decide(command, text, resolve(project_dir, text))
