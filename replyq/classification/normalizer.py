"""
Strip quoted replies, forwarded headers and signatures from pasted email text.

Patterns are applied in a fixed order; the earlier ones remove everything
after the marker because anything below an attribution line or a header
block is the quoted thread, not the user's own words.
"""

from __future__ import annotations

import re

from replyq.config import NORMALIZER_ELLIPSIS, NORMALIZER_MAX_CHARS

# (pattern, replacement) in application order
_QUOTED_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    # "On Tue, Mar 3, 2026 at 9:14 AM Jane <jane@x.com> wrote:"
    (re.compile(r"\nOn .* wrote:\n[\s\S]*", re.IGNORECASE), "\n"),
    # Outlook-style header run
    (re.compile(r"\nFrom: .*\nSent: .*\nTo: .*\nSubject: .*[\s\S]*", re.IGNORECASE), "\n"),
    # "> quoted" lines
    (re.compile(r"\n>.*"), "\n"),
    (re.compile(r"\n-----Original Message-----[\s\S]*", re.IGNORECASE), "\n"),
    # "-- " signature separator
    (re.compile(r"\n-- ?\n[\s\S]*"), "\n"),
    # Long rules (_____, =====, ------)
    (re.compile(r"\n[_=\-]{10,}[\s\S]*"), "\n"),
    # Inline attachment placeholders
    (re.compile(r"\[(?:cid|image):[^\]\n]*\]", re.IGNORECASE), ""),
)

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def _strip_once(text: str) -> str:
    # Leading newline lets line-anchored patterns match on the first line too
    stripped = "\n" + text
    for pattern, replacement in _QUOTED_PATTERNS:
        stripped = pattern.sub(replacement, stripped)
    return _EXCESS_NEWLINES.sub("\n\n", stripped).strip()


def normalize_text(text: str | None, max_chars: int = NORMALIZER_MAX_CHARS) -> str:
    """Return the user's own words from ``text``, capped at ``max_chars``.

    Stripping repeats until nothing changes, so removing one marker can never
    expose another for a later call to find. Pure and idempotent for inputs
    under the cap.
    """
    if not text:
        return ""

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    while True:
        stripped = _strip_once(normalized)
        if stripped == normalized:
            break
        normalized = stripped

    if len(normalized) > max_chars:
        normalized = normalized[:max_chars] + NORMALIZER_ELLIPSIS
    return normalized
