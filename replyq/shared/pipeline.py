"""Pipeline coordinator orchestrating ReplyQ stages.

    raw text -> normalize -> {classify, extract} (concurrent) -> draft
             -> suggestions -> auto-send decision

Every stage degrades to its local fallback internally, so ``process`` only
raises for programming errors.
"""

from __future__ import annotations

import concurrent.futures
import hashlib
from collections.abc import Sequence
from dataclasses import dataclass

from replyq.autosend.controller import AutoSendController, AutoSendSession
from replyq.classification.classifier import IntentClassifier
from replyq.classification.extractor import EntityExtractor
from replyq.classification.normalizer import normalize_text
from replyq.config import (
    AGGREGATE_CLASSIFICATION_WEIGHT,
    AGGREGATE_DRAFT_WEIGHT,
    AGGREGATE_FALLBACK_CAP,
)
from replyq.contracts.models import (
    ClassificationContext,
    ClassificationResult,
    ContactProfile,
    DraftResult,
    DraftUserProfile,
    ExtractionResult,
    SuggestionSet,
    TimeSlot,
)
from replyq.drafting.drafter import DraftGenerator
from replyq.observability.telemetry import counter, log_event, time_block
from replyq.suggestions.aggregator import SuggestionAggregator

# Classification and extraction only; drafting runs after extraction
MAX_WORKERS = 2


@dataclass(frozen=True)
class PipelineResult:
    normalized_text: str
    classification: ClassificationResult
    extraction: ExtractionResult
    extraction_cached: bool
    draft: DraftResult
    suggestions: SuggestionSet
    confidence: float
    autosend_eligible: bool
    autosend: AutoSendSession | None = None


def aggregate_confidence(classification: ClassificationResult, draft: DraftResult) -> float:
    """Weighted stage confidence; capped when any stage fell back."""
    score = (
        AGGREGATE_CLASSIFICATION_WEIGHT * classification.confidence
        + AGGREGATE_DRAFT_WEIGHT * draft.primary.confidence
    )
    if classification.is_fallback or draft.is_fallback:
        score = min(score, AGGREGATE_FALLBACK_CAP)
    return round(min(max(score, 0.0), 1.0), 4)


def draft_ref_for(context_id: str, draft: DraftResult) -> str:
    digest = hashlib.sha256(draft.primary.body.encode("utf-8")).hexdigest()[:12]
    return f"{context_id}:{digest}"


class ReplyPipeline:
    """Wires the stage adapters together; every collaborator is injectable."""

    def __init__(
        self,
        classifier: IntentClassifier | None = None,
        extractor: EntityExtractor | None = None,
        drafter: DraftGenerator | None = None,
        aggregator: SuggestionAggregator | None = None,
        autosend: AutoSendController | None = None,
    ) -> None:
        self.classifier = classifier or IntentClassifier()
        self.extractor = extractor or EntityExtractor()
        self.drafter = drafter or DraftGenerator()
        self.aggregator = aggregator or SuggestionAggregator()
        self.autosend = autosend
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=MAX_WORKERS, thread_name_prefix="replyq-pipeline"
        )

    def process(
        self,
        text: str,
        *,
        context: ClassificationContext | None = None,
        thread_context: str | None = None,
        slots: Sequence[TimeSlot] = (),
        user_profile: DraftUserProfile | None = None,
        contact_profile: ContactProfile | None = None,
        recipients: Sequence[str] = (),
        has_calendar_context: bool = False,
        context_id: str | None = None,
        start_autosend: bool = False,
    ) -> PipelineResult:
        with time_block("pipeline.total"):
            normalized = normalize_text(text)

            with time_block("pipeline.understand"):
                classify_future = self._executor.submit(self.classifier.classify, normalized, context)
                extract_future = self._executor.submit(
                    self.extractor.extract_with_status, text, thread_context
                )
                classification = classify_future.result()
                extraction, cached = extract_future.result()

            with time_block("pipeline.draft"):
                draft = self.drafter.draft(
                    classification.intent,
                    normalized,
                    extraction,
                    slots=slots,
                    user_profile=user_profile,
                    contact_profile=contact_profile,
                )

            confidence = aggregate_confidence(classification, draft)
            suggestions = self.aggregator.aggregate(
                normalized,
                classification.intent,
                confidence,
                extraction=extraction,
                recipients=recipients,
                has_calendar_context=has_calendar_context or bool(slots),
                autosend_threshold=(
                    self.autosend.current_threshold() if self.autosend is not None else None
                ),
            )

            eligible = self.autosend is not None and self.autosend.is_eligible(confidence, normalized)

            session: AutoSendSession | None = None
            if start_autosend and eligible and context_id and self.autosend is not None:
                session = self.autosend.start(
                    context_id, draft_ref_for(context_id, draft), confidence, normalized
                )

        counter("pipeline.processed")
        log_event(
            "pipeline.completed",
            intent=classification.intent,
            confidence=confidence,
            fallback=classification.is_fallback or extraction.is_fallback or draft.is_fallback,
            autosend=session is not None,
        )
        return PipelineResult(
            normalized_text=normalized,
            classification=classification,
            extraction=extraction,
            extraction_cached=cached,
            draft=draft,
            suggestions=suggestions,
            confidence=confidence,
            autosend_eligible=eligible,
            autosend=session,
        )
