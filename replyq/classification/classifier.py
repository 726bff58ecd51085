"""
Intent classification through an external language model, with heuristic fallback.

The external stage is strictly best-effort. Network failure, timeout, a
response without a JSON object, a missing ``intent`` field, or an intent
outside the catalog all produce the HeuristicClassifier's result for the same
text, flagged ``is_fallback=True``. Nothing raised inside the external call
escapes ``classify``.
"""

from __future__ import annotations

import json
import time
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from replyq.classification.heuristic import HeuristicClassifier
from replyq.config import (
    LLM_BREAKER_MIN_EVENTS,
    LLM_BREAKER_THRESHOLD,
    LLM_BREAKER_WINDOW,
    LLM_TIMEOUT_SECONDS,
    use_llm,
)
from replyq.contracts.models import (
    URGENCY_VALUES,
    ClassificationContext,
    ClassificationResult,
    Outcome,
)
from replyq.errors import ExternalServiceError, ParseError
from replyq.infrastructure.circuitbreaker import InvalidResponseCircuitBreaker
from replyq.llm.client import LLMCallFn, gemini_call, invoke_bounded
from replyq.observability.logging import get_logger
from replyq.observability.structured import EventType
from replyq.observability.structured import get_logger as get_structured_logger
from replyq.observability.telemetry import counter, time_block
from replyq.utils.json_extraction import extract_json_object
from replyq.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = """You classify short requests typed into an email assistant used by recruiters and busy professionals.

Pick exactly one intent from the list you are given. Never invent a new intent name.
Report confidence between 0.0 and 1.0. Urgency is one of low, medium, high.
Respond with a single JSON object and nothing else."""

PROMPT_TEMPLATE = """Classify the user's primary intent.

Available intents:
{intents}

Text:
\"\"\"{text}\"\"\"
{context_block}
Output JSON:
{{
  "intent": "one of the intent names above",
  "confidence": 0.0,
  "subCategory": "optional sub-category or null",
  "urgency": "low|medium|high",
  "rationale": "brief explanation"
}}"""


class ExternalClassificationPayload(BaseModel):
    """Shape the external capability must return."""

    model_config = ConfigDict(extra="ignore")

    intent: str = Field(min_length=1)
    confidence: float = Field(allow_inf_nan=False)
    sub_category: str | None = Field(
        default=None, validation_alias=AliasChoices("subCategory", "sub_category")
    )
    urgency: str | None = None
    rationale: str | None = Field(default=None, validation_alias=AliasChoices("rationale", "reasoning"))


class IntentClassifier:
    """External classification adapter.

    Args:
        llm_call_fn: Capability to call. Defaults to Gemini, gated by REPLYQ_USE_LLM;
            an injected callable is always used.
        heuristic: Local classifier providing the fallback and derived fields.
        breaker: Skips the external call while too many recent calls failed.
        timeout: Seconds to wait for one external call.
    """

    def __init__(
        self,
        llm_call_fn: LLMCallFn | None = None,
        heuristic: HeuristicClassifier | None = None,
        breaker: InvalidResponseCircuitBreaker | None = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ) -> None:
        self._llm_call_fn: LLMCallFn = llm_call_fn or gemini_call
        self._injected = llm_call_fn is not None
        self.heuristic = heuristic or HeuristicClassifier()
        self.breaker = breaker or InvalidResponseCircuitBreaker(
            window=LLM_BREAKER_WINDOW,
            threshold=LLM_BREAKER_THRESHOLD,
            min_events=LLM_BREAKER_MIN_EVENTS,
        )
        self.timeout = timeout

    def classify(self, text: str, context: ClassificationContext | None = None) -> ClassificationResult:
        started = time.perf_counter()
        s_logger = get_structured_logger()

        with time_block("classify.latency"):
            reason = self._skip_reason()
            if reason is None:
                try:
                    result = self._classify_external(text, context)
                except (ExternalServiceError, ParseError) as e:
                    self.breaker.record(False)
                    reason = f"{type(e).__name__}: {e}"
                else:
                    self.breaker.record(True)
                    counter("classify.external.success")
                    s_logger.stage_result(
                        "classify",
                        EventType.CLASSIFY_OK,
                        duration_ms=_elapsed_ms(started),
                        fallback_used=False,
                        intent=result.intent,
                        confidence=result.confidence,
                    )
                    return result

            fallback = self.heuristic.classify(text)

        counter("classify.fallback")
        logger.info("Classification fell back to heuristics: %s", reason)
        s_logger.stage_result(
            "classify",
            EventType.CLASSIFY_FALLBACK,
            duration_ms=_elapsed_ms(started),
            fallback_used=True,
            reason=reason,
            intent=fallback.intent,
            confidence=fallback.confidence,
        )
        return fallback

    def _skip_reason(self) -> str | None:
        if not self._injected and not use_llm():
            return "llm_disabled"
        if self.breaker.is_tripped():
            get_structured_logger().log_event(EventType.LLM_CIRCUIT_OPEN, stage="classify")
            return "circuit_open"
        return None

    def _classify_external(
        self, text: str, context: ClassificationContext | None
    ) -> ClassificationResult:
        """Raises ExternalServiceError or ParseError on any contract failure."""
        response_text = invoke_bounded(
            self._llm_call_fn,
            self._build_prompt(text, context),
            stage="classify",
            timeout=self.timeout,
            system_instruction=SYSTEM_INSTRUCTION,
            json_output=True,
            temperature=0.1,
        )
        payload = extract_json_object(response_text)
        outcome = self.coerce(payload, text)
        if not outcome.ok:
            raise ParseError(outcome.reason or "invalid classification payload")
        assert outcome.value is not None
        return outcome.value

    def _build_prompt(self, text: str, context: ClassificationContext | None) -> str:
        intents = "\n".join(f"- {p.name}: {p.description}" for p in self.heuristic.catalog)
        context_block = ""
        if context is not None:
            context_json = json.dumps(context.model_dump(exclude_none=True), ensure_ascii=False)
            context_block = f"\nContext: {sanitize_for_prompt(context_json, max_length=1500)}\n"
        return PROMPT_TEMPLATE.format(
            intents=intents,
            text=sanitize_for_prompt(text),
            context_block=context_block,
        )

    def coerce(self, payload: Any, text: str) -> Outcome[ClassificationResult]:
        """Validate an untyped payload into a full result (external, not fallback)."""
        if not isinstance(payload, dict):
            return Outcome.failure("payload is not an object")
        try:
            parsed = ExternalClassificationPayload.model_validate(payload)
        except PydanticValidationError as e:
            fields = ",".join(str(err["loc"][-1]) for err in e.errors())
            return Outcome.failure(f"schema violation: {fields}")

        intent = parsed.intent.strip().lower()
        if intent not in self.heuristic.catalog:
            counter("classify.external.unknown_intent")
            return Outcome.failure(f"intent {intent!r} not in catalog")

        confidence = min(max(parsed.confidence, 0.0), 1.0)

        urgency = (parsed.urgency or "").strip().lower()
        return Outcome.success(
            self.heuristic.build_result(
                intent,
                confidence,
                text,
                is_fallback=False,
                sub_category=(parsed.sub_category or "").strip() or None,
                urgency=urgency if urgency in URGENCY_VALUES else None,  # type: ignore[arg-type]
                rationale=parsed.rationale,
            )
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
