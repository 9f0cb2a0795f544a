"""Pydantic models for structured data throughout the auto-chain controller."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ChainSettings(BaseModel):
    """Global auto-chain settings.

    Field aliases match the keys used in ``gsd-auto-chain.json`` so the file
    can be validated directly.  ``model_fields_set`` records which keys the
    file actually provided.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    auto_chain: bool = Field(default=True, alias="autoChain")
    auto_chain_delay_ms: int = Field(default=1000, ge=0, alias="autoChainDelay")
    confirm_before_chain: bool = Field(default=False, alias="confirmBeforeChain")
    skip_discuss: bool = Field(default=False, alias="skipDiscuss")


class SkipDiscussSource(str, Enum):
    """Which configuration layer decided the skip-discuss flag."""

    INLINE = "inline"
    PROJECT = "project"
    GLOBAL = "global"
    DEFAULT = "default"


class ResolvedConfig(BaseModel):
    """Settings snapshot for one triggering event."""

    model_config = ConfigDict(frozen=True)

    settings: ChainSettings = Field(default_factory=ChainSettings)
    skip_discuss: bool = False
    skip_discuss_source: SkipDiscussSource = SkipDiscussSource.DEFAULT


# ---------------------------------------------------------------------------
# Decisions and outcomes
# ---------------------------------------------------------------------------


class ChainDecision(BaseModel):
    """Result of the eligibility policy for one candidate command."""

    run: bool = False
    command: str = ""
    reason: str = ""
    confirm_only: bool = False


class ChainOutcome(str, Enum):
    """Terminal outcome of one ``session.idle`` handling."""

    AUTO_CONTINUED = "auto_continued"
    DEFERRED = "deferred"
    NO_COMMAND_FOUND = "no_command_found"
    INELIGIBLE = "ineligible"
    CONFIRM_ONLY_REPORTED = "confirm_only_reported"


class ChainReport(BaseModel):
    """What the controller did for one idle event."""

    outcome: ChainOutcome
    command: str | None = None
    reason: str = ""
    session_id: str = ""


# ---------------------------------------------------------------------------
# Pending handoff
# ---------------------------------------------------------------------------


class PendingHandoff(BaseModel):
    """Deferred command waiting for the next session start."""

    command: str
    timestamp: int = Field(description="Creation time in epoch milliseconds.")

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp

    def is_expired(self, now_ms: int, window_ms: int) -> bool:
        """Return True once the record is older than *window_ms*."""
        return self.age_ms(now_ms) > window_ms


# ---------------------------------------------------------------------------
# Host events
# ---------------------------------------------------------------------------


class HostEvent(BaseModel):
    """An inbound signal from the host runtime."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_id(self) -> str:
        for key in ("sessionID", "sessionId", "session_id"):
            value = self.properties.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""
