"""
Entity and structure extraction through an external language model.

Flow for one call:
    1. Cache lookup keyed by sha256 of the raw text. A hit returns the cached
       ExtractionResult object itself and skips everything below.
    2. Normalize the text (quoted thread and signatures removed).
    3. Ask the model for the ExtractionResult shape and parse the first JSON
       object in its reply. The model may wrap the JSON in prose.
    4. On any failure fall back to regex extraction of email addresses and
       date tokens.
    5. Coerce every field (arrays always present, enums snapped to a valid
       member) and cache the result, fallback results included.
"""

from __future__ import annotations

import hashlib
import re
import time
from typing import Any

from replyq.classification.normalizer import normalize_text
from replyq.config import (
    EXTRACTION_CACHE_TTL_SECONDS,
    LLM_BREAKER_MIN_EVENTS,
    LLM_BREAKER_THRESHOLD,
    LLM_BREAKER_WINDOW,
    LLM_TIMEOUT_SECONDS,
    use_llm,
)
from replyq.contracts.models import (
    SENTIMENT_VALUES,
    URGENCY_VALUES,
    DateTimeMention,
    ExtractionResult,
    LocationMention,
    Outcome,
    Person,
    Sentiment,
    Urgency,
)
from replyq.errors import ExternalServiceError, ParseError
from replyq.infrastructure.circuitbreaker import InvalidResponseCircuitBreaker
from replyq.infrastructure.settings import GEMINI_MODEL
from replyq.llm.client import LLMCallFn, gemini_call, invoke_bounded
from replyq.observability.logging import get_logger
from replyq.observability.structured import EventType
from replyq.observability.structured import get_logger as get_structured_logger
from replyq.observability.telemetry import counter, time_block
from replyq.storage.cache import TTLCache
from replyq.utils.json_extraction import extract_json_object
from replyq.utils.language import detect_language
from replyq.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

FALLBACK_MODEL = "regex-fallback"
FALLBACK_ASK_CHARS = 100
THREAD_CONTEXT_MAX_CHARS = 1000

_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_DATE_TOKEN_RE = re.compile(
    r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2}-\d{1,2}-\d{2,4}"
    r"|january|february|march|april|may(?=\s+\d)|june|july|august"
    r"|september|october|november|december)\b",
    re.IGNORECASE,
)

SYSTEM_INSTRUCTION = """You extract structured information from email text for an email assistant.
Only report what the text states. Use empty arrays when nothing applies.
Respond with a single JSON object and nothing else."""

PROMPT_TEMPLATE = """Extract structured information from this text. Consider thread context if provided.

Text:
\"\"\"{text}\"\"\"
{context_block}
Output JSON:
{{
  "ask": "the main request in one sentence",
  "constraints": ["deadlines, limits or requirements"],
  "people": [{{"name": "", "email": "or null", "role": "or null"}}],
  "dates_times": [{{"text": "as written", "parsed": "ISO-8601 or null", "type": "deadline|meeting|event"}}],
  "locations": [{{"text": "", "type": "office|city|virtual|place"}}],
  "language": "ISO 639-1 code",
  "sentiment": "positive|neutral|negative",
  "urgency": "low|medium|high",
  "topics": ["short topic labels"],
  "action_items": ["concrete next actions"]
}}"""


def cache_key(raw_text: str) -> str:
    """Stable key over the raw (pre-normalization) text."""
    return hashlib.sha256(raw_text.encode("utf-8")).hexdigest()


class EntityExtractor:
    """External extraction adapter with a shared TTL cache.

    Args:
        llm_call_fn: Capability to call. Defaults to Gemini, gated by REPLYQ_USE_LLM;
            an injected callable is always used.
        cache: Shared result cache (60-second TTL by default).
        breaker: Skips the external call while too many recent calls failed.
        timeout: Seconds to wait for one external call.
    """

    def __init__(
        self,
        llm_call_fn: LLMCallFn | None = None,
        cache: TTLCache[ExtractionResult] | None = None,
        breaker: InvalidResponseCircuitBreaker | None = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ) -> None:
        self._llm_call_fn: LLMCallFn = llm_call_fn or gemini_call
        self._injected = llm_call_fn is not None
        self.cache: TTLCache[ExtractionResult] = cache or TTLCache(
            name="extraction", ttl_seconds=EXTRACTION_CACHE_TTL_SECONDS
        )
        self.breaker = breaker or InvalidResponseCircuitBreaker(
            window=LLM_BREAKER_WINDOW,
            threshold=LLM_BREAKER_THRESHOLD,
            min_events=LLM_BREAKER_MIN_EVENTS,
        )
        self.timeout = timeout

    def extract(self, text: str, thread_context: str | None = None) -> ExtractionResult:
        result, _ = self.extract_with_status(text, thread_context)
        return result

    def extract_with_status(
        self, text: str, thread_context: str | None = None
    ) -> tuple[ExtractionResult, bool]:
        """Return ``(result, cache_hit)``."""
        key = cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            get_structured_logger().log_event(
                EventType.EXTRACT_CACHE_HIT, stage="extract", key_hash=key[:12]
            )
            return cached, True

        started = time.perf_counter()
        s_logger = get_structured_logger()

        with time_block("extract.latency"):
            normalized = normalize_text(text)
            context = normalize_text(thread_context, max_chars=THREAD_CONTEXT_MAX_CHARS)

            reason = self._skip_reason()
            result: ExtractionResult | None = None
            if reason is None:
                try:
                    payload = self._extract_external(normalized, context)
                except (ExternalServiceError, ParseError) as e:
                    self.breaker.record(False)
                    reason = f"{type(e).__name__}: {e}"
                else:
                    self.breaker.record(True)
                    outcome = coerce_extraction(
                        payload,
                        source_text=normalized,
                        model_used=GEMINI_MODEL,
                        duration_ms=_elapsed_ms(started),
                    )
                    if outcome.ok:
                        result = outcome.value
                    else:
                        reason = outcome.reason

            if result is None:
                result = fallback_extract(normalized, duration_ms=_elapsed_ms(started))

        self.cache.put(key, result)

        if result.is_fallback:
            counter("extract.fallback")
            logger.info("Extraction fell back to regex: %s", reason)
            s_logger.stage_result(
                "extract",
                EventType.EXTRACT_FALLBACK,
                duration_ms=result.duration_ms,
                fallback_used=True,
                reason=reason,
                people_count=len(result.people),
                dates_count=len(result.dates_times),
            )
        else:
            counter("extract.external.success")
            s_logger.stage_result(
                "extract",
                EventType.EXTRACT_OK,
                duration_ms=result.duration_ms,
                fallback_used=False,
                language=result.language,
                sentiment=result.sentiment,
                urgency=result.urgency,
                people_count=len(result.people),
                dates_count=len(result.dates_times),
            )
        return result, False

    def _skip_reason(self) -> str | None:
        if not self._injected and not use_llm():
            return "llm_disabled"
        if self.breaker.is_tripped():
            get_structured_logger().log_event(EventType.LLM_CIRCUIT_OPEN, stage="extract")
            return "circuit_open"
        return None

    def _extract_external(self, text: str, thread_context: str) -> dict[str, Any]:
        context_block = ""
        if thread_context:
            context_block = f'\nThread context:\n"""{sanitize_for_prompt(thread_context)}"""\n'
        prompt = PROMPT_TEMPLATE.format(text=sanitize_for_prompt(text), context_block=context_block)
        response_text = invoke_bounded(
            self._llm_call_fn,
            prompt,
            stage="extract",
            timeout=self.timeout,
            system_instruction=SYSTEM_INSTRUCTION,
            json_output=True,
            temperature=0.1,
        )
        return extract_json_object(response_text)


def fallback_extract(text: str, duration_ms: int = 0) -> ExtractionResult:
    """Regex extraction: email addresses become people, date tokens become mentions."""
    emails = _unique(m.group(0) for m in _EMAIL_RE.finditer(text))
    dates = _unique(m.group(0) for m in _DATE_TOKEN_RE.finditer(text))

    ask = text if len(text) <= FALLBACK_ASK_CHARS else text[:FALLBACK_ASK_CHARS] + "..."
    return ExtractionResult(
        ask=ask,
        people=tuple(Person(name=e.split("@")[0], email=e, role="contact") for e in emails),
        dates_times=tuple(DateTimeMention(text=d, parsed_iso=None, kind="event") for d in dates),
        language=detect_language(text),
        sentiment="neutral",
        urgency="medium",
        model_used=FALLBACK_MODEL,
        duration_ms=duration_ms,
        is_fallback=True,
    )


def coerce_extraction(
    payload: Any,
    *,
    source_text: str,
    model_used: str,
    duration_ms: int,
) -> Outcome[ExtractionResult]:
    """Defensively coerce an untyped model payload into an ExtractionResult."""
    if not isinstance(payload, dict):
        return Outcome.failure("payload is not an object")

    language = payload.get("language")
    return Outcome.success(
        ExtractionResult(
            ask=_as_str(payload.get("ask")),
            constraints=_str_list(payload.get("constraints")),
            people=tuple(p for p in (_person(x) for x in _as_list(payload.get("people"))) if p),
            dates_times=tuple(
                d
                for d in (_date(x) for x in _as_list(_first(payload, "dates_times", "datesTimes")))
                if d
            ),
            locations=tuple(
                loc for loc in (_location(x) for x in _as_list(payload.get("locations"))) if loc
            ),
            language=language.strip().lower()[:8]
            if isinstance(language, str) and language.strip()
            else detect_language(source_text),
            sentiment=coerce_sentiment(payload.get("sentiment")),
            urgency=coerce_urgency(payload.get("urgency")),
            topics=_str_list(payload.get("topics")),
            action_items=_str_list(_first(payload, "action_items", "actionItems")),
            model_used=model_used,
            duration_ms=duration_ms,
            is_fallback=False,
        )
    )


def coerce_sentiment(value: Any) -> Sentiment:
    """Snap to the nearest valid sentiment, neutral when unrecognizable."""
    label = _as_str(value).lower()
    if label in SENTIMENT_VALUES:
        return label  # type: ignore[return-value]
    if label.startswith("pos"):
        return "positive"
    if label.startswith("neg"):
        return "negative"
    return "neutral"


def coerce_urgency(value: Any) -> Urgency:
    """Snap to the nearest valid urgency, medium when unrecognizable."""
    label = _as_str(value).lower()
    if label in URGENCY_VALUES:
        return label  # type: ignore[return-value]
    if label in ("urgent", "critical", "asap", "very high"):
        return "high"
    if label in ("none", "very low", "minimal"):
        return "low"
    return "medium"


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_str(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _optional_str(value: Any) -> str | None:
    return _as_str(value) or None


def _str_list(value: Any) -> tuple[str, ...]:
    return tuple(s for s in (_as_str(v) for v in _as_list(value)) if s)


def _person(value: Any) -> Person | None:
    if isinstance(value, str):
        return Person(name=value.strip()) if value.strip() else None
    if not isinstance(value, dict):
        return None
    email = _optional_str(value.get("email"))
    name = _as_str(value.get("name")) or (email.split("@")[0] if email else "")
    if not name:
        return None
    return Person(name=name, email=email, role=_optional_str(value.get("role")))


def _date(value: Any) -> DateTimeMention | None:
    if isinstance(value, str):
        return DateTimeMention(text=value.strip()) if value.strip() else None
    if not isinstance(value, dict):
        return None
    text = _as_str(value.get("text"))
    if not text:
        return None
    return DateTimeMention(
        text=text,
        parsed_iso=_optional_str(_first(value, "parsed_iso", "parsedISO", "parsed")),
        kind=_as_str(_first(value, "kind", "type")) or "event",
    )


def _location(value: Any) -> LocationMention | None:
    if isinstance(value, str):
        return LocationMention(text=value.strip()) if value.strip() else None
    if not isinstance(value, dict):
        return None
    text = _as_str(value.get("text"))
    if not text:
        return None
    return LocationMention(text=text, kind=_as_str(_first(value, "kind", "type")) or "place")


def _unique(values: Any) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v.lower() not in seen:
            seen.add(v.lower())
            out.append(v)
    return out


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
