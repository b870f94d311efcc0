"""HTML escaping for user text embedded in notification emails."""

from __future__ import annotations

import re

# Ampersand must stay first so later entities are not escaped again.
_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)

_NEWLINES = re.compile(r"\r\n|\r|\n")


def sanitize_text(value: str) -> str:
    """Escape markup-significant characters in ``value``.

    Not idempotent: sanitizing already escaped text escapes it again, so
    callers should apply it exactly once to text bound for an HTML body.
    """
    for raw, escaped in _REPLACEMENTS:
        value = value.replace(raw, escaped)
    return value


def sanitize_multiline(value: str) -> str:
    """Escape ``value`` and turn its line breaks into ``<br>`` tags."""
    return _NEWLINES.sub("<br>", sanitize_text(value))


__all__ = ["sanitize_multiline", "sanitize_text"]
