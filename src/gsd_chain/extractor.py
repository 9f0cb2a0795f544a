"""Locate the suggested next command in free-form assistant output.

Workflow steps finish with a "Next Up" section that names the command to
run next, e.g.::

    ## ▶ Next Up

    **Phase 3: Auth** — wire up login

    `/gsd-plan-phase 3`

Extraction runs two ordered matcher pipelines: one finds the "Next Up"
section, the other finds a command token inside it.  The first matcher that
succeeds wins.  A proximity-limited scan of the whole text is the last
resort.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ANCHOR_PHRASE = "next up"
FALLBACK_PROXIMITY_CHARS = 300

_SECTION_END = r"(?=\n(?:##|━|Also available)|\Z)"
_EXPLANATION_SPLIT_RE = re.compile(r"\s+—\s+")
_FALLBACK_RE = re.compile(r"(/gsd[a-z0-9-]+(?:[ \t]+\d+)?)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class SectionMatcher:
    """Finds the "Next Up" section with one regex."""

    name: str
    pattern: re.Pattern[str]

    def match(self, text: str) -> str | None:
        found = self.pattern.search(text)
        return found.group(0) if found else None


@dataclass(frozen=True, slots=True)
class CommandMatcher:
    """Finds a command token inside a section with one regex."""

    name: str
    pattern: re.Pattern[str]

    def match(self, section: str) -> str | None:
        found = self.pattern.search(section)
        if not found:
            return None
        return _strip_explanation(found.group(1))


# U+25BA and U+25B6 are two different arrows that render almost the same.
SECTION_MATCHERS: tuple[SectionMatcher, ...] = (
    SectionMatcher("arrow", re.compile(r"(?:##\s*)?[►▶]\s*Next Up.*?" + _SECTION_END, re.DOTALL)),
    SectionMatcher("quote", re.compile(r"(?:##\s*)?>\s*Next Up.*?" + _SECTION_END, re.DOTALL)),
    SectionMatcher("heading", re.compile(r"##\s*Next Up.*?" + _SECTION_END, re.DOTALL)),
    SectionMatcher(
        "phrase",
        re.compile(r"Next Up[:\s]*\n.*?(?=\n\n|\n(?:##|━)|\Z)", re.DOTALL | re.IGNORECASE),
    ),
)

COMMAND_MATCHERS: tuple[CommandMatcher, ...] = (
    CommandMatcher("backtick", re.compile(r"`(/gsd[a-z-]+(?:\s+[^`]+)?)`")),
    CommandMatcher("line-start", re.compile(r"^(/gsd[a-z-]+(?:[ \t]+\S+)*)", re.MULTILINE)),
    CommandMatcher("anywhere-num", re.compile(r"(/gsd[a-z-]+(?:[ \t]+\d+)?)")),
    CommandMatcher("colon-format", re.compile(r":\s*(/gsd[a-z-]+(?:[ \t]+\S+)*)")),
    CommandMatcher("anywhere", re.compile(r"(/gsd[a-z0-9-]+(?:[ \t]+[^\n]+)?)")),
)


def _strip_explanation(raw: str) -> str:
    """Trim and drop a trailing `` — explanation`` clause."""
    return _EXPLANATION_SPLIT_RE.split(raw.strip(), maxsplit=1)[0].strip()


def find_next_up_section(text: str) -> str | None:
    """Return the "Next Up" section of *text*, or ``None`` when absent."""
    for matcher in SECTION_MATCHERS:
        section = matcher.match(text)
        if section is not None:
            logger.debug("Next Up matched with pattern %r", matcher.name)
            return section
    return None


def _command_near_anchor(text: str) -> str | None:
    """Return a command token shortly after the anchor phrase, if any.

    Scanning starts at the anchor, so commands mentioned earlier in the
    text neither match nor block a later one.
    """
    anchor = text.lower().find(ANCHOR_PHRASE)
    if anchor == -1:
        return None
    for found in _FALLBACK_RE.finditer(text, anchor + 1):
        distance = found.start() - anchor
        if distance >= FALLBACK_PROXIMITY_CHARS:
            break
        return found.group(1).strip()
    logger.debug("Fallback command too far from %r", ANCHOR_PHRASE)
    return None


def extract_next_command(text: str) -> str | None:
    """Return the suggested next command in *text*, or ``None``.

    ``None`` means there is nothing to chain; it is never an error.
    """
    if not text:
        logger.debug("extract_next_command: empty content")
        return None

    section = find_next_up_section(text)
    if section is None:
        anchor = text.lower().find(ANCHOR_PHRASE)
        if anchor != -1:
            logger.debug(
                "Found %r text but no section pattern matched: %r",
                ANCHOR_PHRASE,
                text[anchor : anchor + 150],
            )
        return None

    logger.debug("Next Up section found (%d chars): %r", len(section), section[:150])
    for matcher in COMMAND_MATCHERS:
        command = matcher.match(section)
        if command:
            logger.debug("Matched with pattern %r: %s", matcher.name, command)
            return command

    logger.debug("No pattern matched in section, trying whole content")
    return _command_near_anchor(text)
