"""Inline control directives embedded in assistant output."""

from __future__ import annotations

NO_CHAIN_DIRECTIVE = "<!-- gsd:no-chain -->"
"""Suppresses any chaining for the message that carries it."""

SKIP_DISCUSS_DIRECTIVE = "<!-- gsd:skip-discuss -->"
USE_DISCUSS_DIRECTIVE = "<!-- gsd:use-discuss -->"


def contains_no_chain_directive(text: str) -> bool:
    """Return True when *text* asks the controller not to chain."""
    if not text:
        return False
    return NO_CHAIN_DIRECTIVE in text


def inline_skip_discuss(text: str) -> bool | None:
    """Return the per-message skip-discuss override, or ``None`` if absent.

    The skip directive is checked first, so a message carrying both forces
    the skip.
    """
    if not text:
        return None
    if SKIP_DISCUSS_DIRECTIVE in text:
        return True
    if USE_DISCUSS_DIRECTIVE in text:
        return False
    return None
