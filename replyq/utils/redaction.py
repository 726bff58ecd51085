"""
Helpers for redacting sensitive information before telemetry and for
sanitizing user text before it is embedded in LLM prompts.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- sanitize_for_prompt(): Remove potential prompt injection patterns
"""

from __future__ import annotations

import re
from hashlib import sha256

# Patterns that could be used for prompt injection
INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"new\s+instructions?:",
    r"system\s*:",
    r"assistant\s*:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE)


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def sanitize_for_prompt(text: str, max_length: int = 4000) -> str:
    """
    Sanitize user-provided text before including it in an LLM prompt.

    Removes known injection patterns and truncates. Braces are kept because
    users legitimately paste snippets containing them; the prompts fence user
    text inside triple quotes instead.
    """
    if not text:
        return ""

    text = text[:max_length]
    text = INJECTION_REGEX.sub("[REDACTED]", text)
    return text.strip()
