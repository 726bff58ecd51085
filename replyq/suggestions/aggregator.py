"""
Action suggestion aggregation (intent router).

Content signals are regex tests over the source text; the detected intent
nudges priorities of the suggestions it agrees with. Ranking is
``(priority desc, confidence desc)`` and stable, so equal suggestions keep
their generation order. The full ranking is always computed; the top-N view
is a slice of it.

The overall confidence (classification blended with drafting) damps every
suggestion's confidence below 0.5 and gates ``auto_send`` on the auto-send
threshold. Suggestions carry the detected intent; handoffs carry the
target module's ``route_*`` intent.
"""

from __future__ import annotations

import re
import time
from collections.abc import Sequence
from dataclasses import dataclass

from replyq.config import AUTOSEND_COUNTDOWN_SECONDS, AUTOSEND_THRESHOLD, SUGGESTIONS_TOP_N
from replyq.contracts.models import ActionSuggestion, ExtractionResult, SuggestionSet
from replyq.observability.logging import get_logger
from replyq.observability.structured import EventType
from replyq.observability.structured import get_logger as get_structured_logger
from replyq.observability.telemetry import counter
from replyq.suggestions.handoff import HANDOFF_TARGETS, build_handoff_payload
from replyq.suggestions.rationale import build_rationale

logger = get_logger(__name__)

SCHEDULING_RE = re.compile(
    r"\b(meeting|call|interview|discussion|appointment|demo|schedule)\b", re.IGNORECASE
)
QUESTION_RE = re.compile(r"\?")
URGENT_RE = re.compile(r"\b(urgent|asap|immediately|quick|fast)\b", re.IGNORECASE)
REPEAT_RE = re.compile(r"\b(again|also|similar|same)\b", re.IGNORECASE)
TIME_RE = re.compile(
    r"\b(\d{1,2}:\d{2}|\d{1,2}\s?(am|pm)|morning|afternoon|evening)\b", re.IGNORECASE
)
CROSS_MODULE_RES: dict[str, re.Pattern[str]] = {
    "travel": re.compile(r"\b(travel|flight|hotel|itinerary|trip)\b", re.IGNORECASE),
    "shop": re.compile(r"\b(buy|purchase|order|quote|pricing|price)\b", re.IGNORECASE),
    "hire": re.compile(r"\b(job|candidate|resume|cv|interview|hiring)\b", re.IGNORECASE),
}

SCHEDULING_INTENTS = frozenset({"interview_scheduling", "calendar_management"})


@dataclass(frozen=True)
class ContentSignals:
    has_scheduling_keywords: bool
    has_time_references: bool
    has_questions: bool
    is_urgent: bool
    has_repeat_pattern: bool
    length: int
    cross_module: tuple[str, ...]


def analyze_content(text: str) -> ContentSignals:
    return ContentSignals(
        has_scheduling_keywords=bool(SCHEDULING_RE.search(text)),
        has_time_references=bool(TIME_RE.search(text)),
        has_questions=bool(QUESTION_RE.search(text)),
        is_urgent=bool(URGENT_RE.search(text)),
        has_repeat_pattern=bool(REPEAT_RE.search(text)),
        length=len(text),
        cross_module=tuple(k for k, rx in CROSS_MODULE_RES.items() if rx.search(text)),
    )


def rank(suggestions: Sequence[ActionSuggestion]) -> list[ActionSuggestion]:
    return sorted(suggestions, key=lambda s: (-s.priority, -s.confidence))


def scale_confidence(kind_confidence: float, confidence: float) -> float:
    """Damp a suggestion's own confidence when overall confidence is under 0.5."""
    return round(kind_confidence * min(1.0, 0.5 + max(confidence, 0.0)), 4)


class SuggestionAggregator:
    """Turns intent, extraction and text signals into a ranked SuggestionSet.

    Args:
        top_n: Size of the presentation view.
        autosend_threshold: Default gate for offering ``auto_send``; callers
            holding an AutoSendController pass its current threshold instead.
    """

    def __init__(
        self, top_n: int = SUGGESTIONS_TOP_N, autosend_threshold: float = AUTOSEND_THRESHOLD
    ) -> None:
        self.top_n = top_n
        self.autosend_threshold = autosend_threshold

    def aggregate(
        self,
        text: str,
        intent: str,
        confidence: float,
        extraction: ExtractionResult | None = None,
        recipients: Sequence[str] = (),
        has_calendar_context: bool = False,
        autosend_threshold: float | None = None,
    ) -> SuggestionSet:
        started = time.perf_counter()
        signals = analyze_content(text)
        scheduling_intent = intent in SCHEDULING_INTENTS
        gate = self.autosend_threshold if autosend_threshold is None else autosend_threshold
        candidates: list[ActionSuggestion] = []

        def add(
            kind: str,
            label: str,
            icon: str,
            priority: int,
            kind_confidence: float,
            suggestion_id: str | None = None,
            suggestion_intent: str | None = None,
            payload: str | None = None,
            rationale: str | None = None,
        ) -> None:
            candidates.append(
                ActionSuggestion(
                    id=suggestion_id or kind,
                    intent=suggestion_intent or intent,
                    label=label,
                    icon=icon,
                    priority=max(0, min(priority, 100)),
                    confidence=scale_confidence(kind_confidence, confidence),
                    rationale=rationale
                    or build_rationale(
                        kind,
                        has_questions=signals.has_questions,
                        has_time_references=signals.has_time_references,
                        recipients=recipients,
                    ),
                    side_effect_payload=payload,
                )
            )

        if signals.has_questions or signals.length > 50:
            add(
                "reply",
                "Quick Reply",
                "paper-airplane",
                85 if signals.has_questions else 60,
                0.9 if signals.has_questions else 0.7,
            )

        if (
            signals.has_scheduling_keywords
            or signals.has_time_references
            or has_calendar_context
            or scheduling_intent
        ):
            both = signals.has_scheduling_keywords and signals.has_time_references
            add(
                "schedule",
                "Propose Times",
                "calendar-days",
                (90 if signals.has_time_references else 75) + (5 if scheduling_intent else 0),
                0.95 if both else 0.8,
            )

        if has_calendar_context or signals.has_scheduling_keywords:
            add("add_calendar", "Add to Calendar", "calendar-days", 70, 0.85)

        if signals.has_repeat_pattern or signals.length > 100 or intent == "template_usage":
            add(
                "save_template",
                "Save Template",
                "bookmark",
                (55 if signals.has_repeat_pattern else 35) + (20 if intent == "template_usage" else 0),
                0.85 if signals.has_repeat_pattern else 0.6,
            )

        if recipients and (signals.has_questions or signals.is_urgent) and confidence >= gate:
            add(
                "auto_send",
                f"Auto-Send ({AUTOSEND_COUNTDOWN_SECONDS}s)",
                "clock",
                80 if signals.is_urgent else 60,
                0.8,
            )

        if extraction is not None and extraction.language != "en":
            add("translate", "Translate Reply", "language", 65, 0.75)

        if signals.length > 400:
            add("summarize", "Quick Summary", "light-bulb", 80, 0.75)

        for key in signals.cross_module:
            target = HANDOFF_TARGETS[key]
            add(
                "handoff",
                target.label,
                target.icon,
                50,
                0.7,
                suggestion_id=f"handoff_{target.module}",
                suggestion_intent=target.intent,
                payload=build_handoff_payload(target, extraction, text),
            )

        ranked = rank(candidates)
        counter("suggest.generated", len(ranked))
        get_structured_logger().log_event(
            EventType.SUGGEST_RANKED,
            stage="suggest",
            duration_ms=int((time.perf_counter() - started) * 1000),
            intent=intent,
            confidence=round(confidence, 4),
            autosend_threshold=gate,
            count=len(ranked),
            primary=ranked[0].id if ranked else None,
        )
        return SuggestionSet(ranked=tuple(ranked), top_n=self.top_n)
