"""Stop-word language guess used when a model does not report the language."""

from __future__ import annotations

import re

# Checked in order; first language with a stop-word hit wins
_STOPWORDS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("en", re.compile(r"\b(the|and|or|is|are|was|were|have|has|had|will|would|could|should)\b")),
    ("es", re.compile(r"\b(el|la|es|son|tiene|con|para|por|que|pero)\b")),
    ("fr", re.compile(r"\b(le|la|et|est|sont|avec|pour|par|que|mais)\b")),
    ("de", re.compile(r"\b(der|die|das|ist|sind|hat|mit|für|von|zu|aber)\b")),
)


def detect_language(text: str, default: str = "en") -> str:
    lower = text.lower()
    for code, pattern in _STOPWORDS:
        if pattern.search(lower):
            return code
    return default
