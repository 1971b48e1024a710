"""Formatting helpers shared by the card renderer and transition engine."""

from __future__ import annotations

DESCRIPTION_LIMIT = 300
ELLIPSIS = "..."

DRAFT_GLYPH = "🚧"
_STATE_GLYPHS = {
    "open": "🟢",
    "closed": "🔴",
    "merged": "🟣",
}
_UNKNOWN_STATE_GLYPH = "⚪"

_MERGEABLE_GLYPHS = {
    "clean": "✅",
    "dirty": "❌",
    "unstable": "⚠️",
    "blocked": "🚫",
}
_UNKNOWN_MERGEABLE_GLYPH = "❓"

_MERGEABLE_LABELS = {
    "clean": "Ready to merge",
    "dirty": "Merge conflicts",
    "unstable": "Checks failing",
    "blocked": "Blocked",
    "unknown": "Checking...",
}
_UNKNOWN_MERGEABLE_LABEL = "Unknown"

APPROVED_GLYPH = "✅"
CHANGES_REQUESTED_GLYPH = "🔄"


def truncate(text: str, limit: int = DESCRIPTION_LIMIT, marker: str = ELLIPSIS) -> str:
    """Cut text to exactly ``limit`` characters plus ``marker`` when longer."""
    if len(text) > limit:
        return text[:limit] + marker
    return text


def status_glyph(state: str, draft: bool = False) -> str:
    if draft:
        return DRAFT_GLYPH
    return _STATE_GLYPHS.get(state, _UNKNOWN_STATE_GLYPH)


def mergeable_glyph(mergeable_state: str | None) -> str:
    return _MERGEABLE_GLYPHS.get(mergeable_state or "", _UNKNOWN_MERGEABLE_GLYPH)


def mergeable_label(mergeable_state: str | None) -> str:
    return _MERGEABLE_LABELS.get(mergeable_state or "", _UNKNOWN_MERGEABLE_LABEL)


def quote(text: str) -> str:
    """Render a reviewer comment as an italic quotation in Slack mrkdwn."""
    return f'_"{text}"_'


def escape_mrkdwn(text: str) -> str:
    """Escape the three characters Slack reserves for control sequences."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
