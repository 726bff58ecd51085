"""
Deterministic keyword/phrase intent scoring.

This is the local fallback for every external classification call, so it
does no I/O and always returns a complete ClassificationResult.

Score per intent:
    raw   = 0.6 * (matched keywords / keywords) + 0.4 * (matched phrases / phrases)
    final = min(raw * base_weight, 0.9)

The best intent must beat the 0.3 floor; otherwise the catalog default wins
with confidence 0.3. Ties keep the earlier catalog entry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from replyq.classification.catalog import DEFAULT_CATALOG, IntentCatalog, IntentPattern
from replyq.config import (
    HEURISTIC_CONFIDENCE_CAP,
    HEURISTIC_CONFIDENCE_FLOOR,
    HEURISTIC_KEYWORD_WEIGHT,
    HEURISTIC_PHRASE_WEIGHT,
)
from replyq.contracts.models import ClassificationResult, Urgency

HIGH_URGENCY_TERMS: tuple[str, ...] = (
    "urgent",
    "asap",
    "immediately",
    "today",
    "now",
    "emergency",
    "critical",
    "deadline",
    "expires",
    "time sensitive",
)
MEDIUM_URGENCY_TERMS: tuple[str, ...] = (
    "soon",
    "this week",
    "by friday",
    "by tomorrow",
    "follow up",
    "waiting",
    "pending",
    "quick question",
)


def _word_regex(terms: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(t) for t in terms) + r")\b", re.IGNORECASE)


_HIGH_URGENCY_RE = _word_regex(HIGH_URGENCY_TERMS)
_MEDIUM_URGENCY_RE = _word_regex(MEDIUM_URGENCY_TERMS)


def derive_urgency(text: str) -> Urgency:
    """High-urgency terms override medium ones; word-boundary matches only."""
    if _HIGH_URGENCY_RE.search(text):
        return "high"
    if _MEDIUM_URGENCY_RE.search(text):
        return "medium"
    return "low"


@dataclass(frozen=True)
class IntentScore:
    intent: str
    score: float
    matched_keywords: int
    matched_phrases: int


class HeuristicClassifier:
    """Pattern-based intent classifier over an injectable catalog."""

    def __init__(self, catalog: IntentCatalog = DEFAULT_CATALOG) -> None:
        self.catalog = catalog

    def score(self, text: str) -> list[IntentScore]:
        """Final (capped) score for every catalog intent, in catalog order."""
        lower = text.lower()
        scores: list[IntentScore] = []
        for pattern in self.catalog:
            keyword_hits = sum(1 for k in pattern.keywords if k.lower() in lower)
            phrase_hits = sum(1 for p in pattern.phrases if p.lower() in lower)
            raw = 0.0
            if pattern.keywords:
                raw += HEURISTIC_KEYWORD_WEIGHT * keyword_hits / len(pattern.keywords)
            if pattern.phrases:
                raw += HEURISTIC_PHRASE_WEIGHT * phrase_hits / len(pattern.phrases)
            final = min(raw * pattern.base_weight, HEURISTIC_CONFIDENCE_CAP)
            scores.append(IntentScore(pattern.name, final, keyword_hits, phrase_hits))
        return scores

    def classify(self, text: str) -> ClassificationResult:
        best: IntentScore | None = None
        best_score = HEURISTIC_CONFIDENCE_FLOOR
        for candidate in self.score(text):
            if candidate.score > best_score:
                best, best_score = candidate, candidate.score

        if best is None:
            return self.build_result(
                self.catalog.default_intent,
                HEURISTIC_CONFIDENCE_FLOOR,
                text,
                is_fallback=True,
                rationale=f"no intent cleared the {HEURISTIC_CONFIDENCE_FLOOR:.2f} floor",
            )

        pattern = self.catalog.get(best.intent)
        assert pattern is not None
        return self.build_result(
            best.intent,
            best.score,
            text,
            is_fallback=True,
            rationale=(
                f"matched {best.matched_keywords}/{len(pattern.keywords)} keywords and "
                f"{best.matched_phrases}/{len(pattern.phrases)} phrases"
            ),
        )

    def sub_category(self, intent: str, text: str) -> str | None:
        pattern = self.catalog.get(intent)
        if pattern is None:
            return None
        return _match_sub_category(pattern, text.lower())

    def build_result(
        self,
        intent: str,
        confidence: float,
        text: str,
        *,
        is_fallback: bool,
        sub_category: str | None = None,
        urgency: Urgency | None = None,
        rationale: str | None = None,
    ) -> ClassificationResult:
        """Assemble a result for a catalog intent, deriving missing fields locally.

        Raises:
            KeyError: ``intent`` is not in the catalog.
        """
        pattern = self.catalog.get(intent)
        if pattern is None:
            raise KeyError(intent)
        return ClassificationResult(
            intent=intent,
            confidence=confidence,
            sub_category=sub_category or _match_sub_category(pattern, text.lower()),
            urgency=urgency or derive_urgency(text),
            suggested_actions=pattern.suggested_actions,
            required_data=pattern.required_data,
            routing=pattern.routing,
            is_fallback=is_fallback,
            rationale=rationale,
        )


def _match_sub_category(pattern: IntentPattern, lower_text: str) -> str | None:
    for label, terms in pattern.sub_categories:
        if any(term in lower_text for term in terms):
            return label
    return pattern.default_sub_category
