"""Parse generated email prose and score draft confidence."""

from __future__ import annotations

import re
from dataclasses import dataclass

from replyq.config import DRAFT_CONFIDENCE_BASE, DRAFT_CONFIDENCE_CAP
from replyq.contracts.models import ExtractionResult

_SUBJECT_PREFIX_RE = re.compile(r"^\s*(?:subject:|re:|fw:|fwd:)\s*", re.IGNORECASE)
CLOSING_PHRASES: tuple[str, ...] = ("best regards", "sincerely", "thank you", "thanks")

# Closings are only searched for near the end so "Thanks for the update" in the
# opening line is not mistaken for the signoff
_SIGNOFF_SEARCH_LINES = 4


@dataclass(frozen=True)
class ParsedEmail:
    subject: str
    body: str
    signoff: str


def parse_email_content(content: str) -> ParsedEmail:
    """Split generated prose into subject, body and signoff.

    Subject is the first line prefixed ``Subject:``/``Re:``/``Fw:`` (prefix
    removed), otherwise the first non-empty line. The signoff starts at the
    last closing-phrase line near the end and runs to the end of the text.
    """
    lines = [line.rstrip() for line in content.strip().splitlines()]
    non_empty = [i for i, line in enumerate(lines) if line.strip()]
    if not non_empty:
        return ParsedEmail(subject="", body="", signoff="")

    subject_idx = next((i for i in non_empty if _SUBJECT_PREFIX_RE.match(lines[i])), None)
    if subject_idx is not None:
        subject = _SUBJECT_PREFIX_RE.sub("", lines[subject_idx]).strip()
    else:
        subject = lines[non_empty[0]].strip()

    signoff_idx: int | None = None
    for i in reversed(non_empty[-_SIGNOFF_SEARCH_LINES:]):
        if i == subject_idx:
            break
        lower = lines[i].strip().lower()
        if any(lower.startswith(phrase) for phrase in CLOSING_PHRASES):
            signoff_idx = i
            break

    end = signoff_idx if signoff_idx is not None else len(lines)
    body_lines = [line for i, line in enumerate(lines[:end]) if i != subject_idx]
    body = "\n".join(body_lines).strip()
    signoff = "\n".join(lines[signoff_idx:]).strip() if signoff_idx is not None else ""
    return ParsedEmail(subject=subject, body=body, signoff=signoff)


def compute_draft_confidence(extraction: ExtractionResult, has_slots: bool) -> float:
    """Score from context completeness; the model's own confidence is never used."""
    confidence = DRAFT_CONFIDENCE_BASE
    if len(extraction.ask) > 10:
        confidence += 0.1
    if extraction.people:
        confidence += 0.1
    if extraction.dates_times:
        confidence += 0.1
    if extraction.topics:
        confidence += 0.1
    if has_slots:
        confidence += 0.2
    if extraction.sentiment == "positive":
        confidence += 0.05
    if extraction.urgency == "high":
        confidence += 0.05
    return round(min(confidence, DRAFT_CONFIDENCE_CAP), 4)


def word_count(text: str) -> int:
    return len(text.split())
