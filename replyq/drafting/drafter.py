"""
Reply drafting through an external language model.

One request is made for the primary tone (the user's preferred tone, or
"professional") and up to two more for alternative tones. All requests run
concurrently and independently:

- A failed alternative is dropped; the batch still succeeds.
- A failed primary is replaced by a deterministic local template draft and
  the result is flagged ``is_fallback``.

Confidence for every candidate is computed locally from the extraction's
completeness (see ``compute_draft_confidence``).
"""

from __future__ import annotations

import concurrent.futures
import time
from collections.abc import Sequence

from replyq.config import (
    DRAFT_ALTERNATIVE_TONES,
    DRAFT_CONFIDENCE_BASE,
    DRAFT_DEFAULT_TONE,
    DRAFT_MAX_ALTERNATIVES,
    LLM_BREAKER_MIN_EVENTS,
    LLM_BREAKER_THRESHOLD,
    LLM_BREAKER_WINDOW,
    LLM_MAX_WORKERS,
    LLM_TIMEOUT_SECONDS,
    use_llm,
)
from replyq.contracts.models import (
    ContactProfile,
    DraftCandidate,
    DraftResult,
    DraftUserProfile,
    ExtractionResult,
    TimeSlot,
)
from replyq.drafting.parser import compute_draft_confidence, parse_email_content, word_count
from replyq.errors import ExternalServiceError, ParseError
from replyq.infrastructure.circuitbreaker import InvalidResponseCircuitBreaker
from replyq.infrastructure.settings import GEMINI_DRAFT_TEMPERATURE, GEMINI_MODEL
from replyq.llm.client import LLMCallFn, gemini_call, invoke_bounded
from replyq.observability.logging import get_logger
from replyq.observability.structured import EventType
from replyq.observability.structured import get_logger as get_structured_logger
from replyq.observability.telemetry import counter, time_block
from replyq.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

TEMPLATE_MODEL = "template-fallback"

_DRAFT_POOL = concurrent.futures.ThreadPoolExecutor(
    max_workers=LLM_MAX_WORKERS, thread_name_prefix="replyq-draft"
)

SYSTEM_INSTRUCTION = """You write short, clear emails on behalf of the user.
Start with a line "Subject: ..." (at most six words), then the body, then a closing line
such as "Best regards," followed by the sender's name when known.
Keep the body between 60 and 140 words. Do not invent facts, names or times."""

CLOSINGS: dict[str, str] = {
    "professional": "Best regards",
    "formal": "Sincerely",
    "friendly": "Thanks",
    "casual": "Thanks",
}

INTENT_GUIDANCE: dict[str, str] = {
    "interview_scheduling": "Focus on scheduling and list the suggested times clearly.",
    "calendar_management": "Focus on the calendar change and confirm the new time.",
    "follow_up": "Reference the earlier conversation and ask for a concrete update.",
    "status_inquiry": "Ask for the current status and the next steps.",
    "template_usage": "Keep the wording reusable; avoid one-off details.",
}


class DraftGenerator:
    """External drafting adapter.

    Args:
        llm_call_fn: Capability to call. Defaults to Gemini, gated by REPLYQ_USE_LLM;
            an injected callable is always used.
        breaker: Skips the external call while too many recent calls failed.
        timeout: Seconds to wait for one external call.
        max_alternatives: Cap on alternative-tone candidates returned.
    """

    def __init__(
        self,
        llm_call_fn: LLMCallFn | None = None,
        breaker: InvalidResponseCircuitBreaker | None = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
        max_alternatives: int = DRAFT_MAX_ALTERNATIVES,
    ) -> None:
        self._llm_call_fn: LLMCallFn = llm_call_fn or gemini_call
        self._injected = llm_call_fn is not None
        self.breaker = breaker or InvalidResponseCircuitBreaker(
            window=LLM_BREAKER_WINDOW,
            threshold=LLM_BREAKER_THRESHOLD,
            min_events=LLM_BREAKER_MIN_EVENTS,
        )
        self.timeout = timeout
        self.max_alternatives = max_alternatives

    def draft(
        self,
        intent: str,
        text: str,
        extraction: ExtractionResult,
        slots: Sequence[TimeSlot] = (),
        user_profile: DraftUserProfile | None = None,
        contact_profile: ContactProfile | None = None,
    ) -> DraftResult:
        started = time.perf_counter()
        s_logger = get_structured_logger()
        profile = user_profile or DraftUserProfile()
        primary_tone = (profile.tone or DRAFT_DEFAULT_TONE).lower()
        alternative_tones = [t for t in DRAFT_ALTERNATIVE_TONES if t != primary_tone][
            : self.max_alternatives
        ]
        language = profile.language or extraction.language or "en"
        confidence = compute_draft_confidence(extraction, has_slots=bool(slots))

        with time_block("draft.latency"):
            reason = self._skip_reason()
            primary: DraftCandidate | None = None
            alternatives: list[DraftCandidate] = []

            if reason is None:
                futures = {
                    tone: _DRAFT_POOL.submit(
                        self._draft_external,
                        tone,
                        intent,
                        text,
                        extraction,
                        slots,
                        profile,
                        contact_profile,
                        language,
                        confidence,
                    )
                    for tone in [primary_tone, *alternative_tones]
                }
                try:
                    primary = futures[primary_tone].result()
                except (ExternalServiceError, ParseError) as e:
                    reason = f"{type(e).__name__}: {e}"

                for tone in alternative_tones:
                    try:
                        alternatives.append(futures[tone].result())
                    except (ExternalServiceError, ParseError) as e:
                        counter("draft.alternative.failed")
                        s_logger.log_event(
                            EventType.DRAFT_ALTERNATIVE_FAILED,
                            stage="draft",
                            tone=tone,
                            reason=type(e).__name__,
                        )

            is_fallback = primary is None
            if primary is None:
                primary = build_template_draft(
                    intent, extraction, slots, profile, contact_profile, primary_tone
                )

        duration_ms = int((time.perf_counter() - started) * 1000)
        if is_fallback:
            counter("draft.fallback")
            logger.info("Drafting fell back to template: %s", reason)
        else:
            counter("draft.external.success")
        s_logger.stage_result(
            "draft",
            EventType.DRAFT_FALLBACK if is_fallback else EventType.DRAFT_OK,
            duration_ms=duration_ms,
            fallback_used=is_fallback,
            reason=reason,
            tone=primary_tone,
            alternatives=len(alternatives),
        )

        return DraftResult(
            primary=primary,
            alternatives=tuple(alternatives[: self.max_alternatives]),
            suggested_actions=suggest_followup_actions(extraction, has_slots=bool(slots)),
            intent=intent,
            model_used=TEMPLATE_MODEL if is_fallback else GEMINI_MODEL,
            duration_ms=duration_ms,
            language=language,
            urgency=extraction.urgency,
            is_fallback=is_fallback,
        )

    def _skip_reason(self) -> str | None:
        if not self._injected and not use_llm():
            return "llm_disabled"
        if self.breaker.is_tripped():
            get_structured_logger().log_event(EventType.LLM_CIRCUIT_OPEN, stage="draft")
            return "circuit_open"
        return None

    def _draft_external(
        self,
        tone: str,
        intent: str,
        text: str,
        extraction: ExtractionResult,
        slots: Sequence[TimeSlot],
        profile: DraftUserProfile,
        contact: ContactProfile | None,
        language: str,
        confidence: float,
    ) -> DraftCandidate:
        """Raises ExternalServiceError or ParseError; never returns a partial candidate."""
        prompt = build_draft_prompt(intent, text, extraction, slots, tone, language, profile, contact)
        try:
            response_text = invoke_bounded(
                self._llm_call_fn,
                prompt,
                stage="draft",
                timeout=self.timeout,
                system_instruction=SYSTEM_INSTRUCTION,
                temperature=GEMINI_DRAFT_TEMPERATURE,
            )
        except ExternalServiceError:
            self.breaker.record(False)
            raise

        parsed = parse_email_content(response_text)
        if not parsed.body:
            self.breaker.record(False)
            raise ParseError("draft response has no body")
        self.breaker.record(True)

        signoff = parsed.signoff
        if profile.signature:
            closing = signoff.splitlines()[0] if signoff else f"{CLOSINGS.get(tone, 'Best regards')},"
            signoff = f"{closing}\n{profile.signature.strip()}"

        return DraftCandidate(
            subject=parsed.subject,
            body=parsed.body,
            signoff=signoff,
            tone=tone,
            confidence=confidence,
            word_count=word_count(parsed.body),
        )


def build_draft_prompt(
    intent: str,
    text: str,
    extraction: ExtractionResult,
    slots: Sequence[TimeSlot],
    tone: str,
    language: str,
    profile: DraftUserProfile,
    contact: ContactProfile | None,
) -> str:
    lines = [
        f"Write a {tone} email in {language} based on this request.",
        "",
        f'Original request: """{sanitize_for_prompt(text)}"""',
        "",
        f"Intent: {intent}",
        f"What the user wants: {sanitize_for_prompt(extraction.ask, max_length=300)}",
    ]
    if extraction.people:
        lines.append("People involved: " + ", ".join(p.name or p.email or "" for p in extraction.people))
    if extraction.topics:
        lines.append("Topics: " + ", ".join(extraction.topics))
    if slots:
        lines.append("Suggested meeting times:")
        lines.extend(f"{i}. {_format_slot(slot)}" for i, slot in enumerate(slots, start=1))
    if contact and contact.name:
        relationship = f" ({contact.relationship})" if contact.relationship else ""
        lines.append(f"Recipient: {contact.name}{relationship}")
    lines.append("")
    lines.append(INTENT_GUIDANCE.get(intent, "Make it relevant to the user's request."))
    if profile.name:
        lines.append(f"Sender name: {profile.name}")
    return "\n".join(lines)


def build_template_draft(
    intent: str,
    extraction: ExtractionResult,
    slots: Sequence[TimeSlot],
    profile: DraftUserProfile,
    contact: ContactProfile | None,
    tone: str,
) -> DraftCandidate:
    """Deterministic local draft used when the primary external draft fails."""
    greeting_name = (contact.name if contact and contact.name else None) or (
        extraction.people[0].name if extraction.people else None
    )
    greeting = f"Hi {greeting_name}," if greeting_name else "Hi,"

    ask = extraction.ask.rstrip(".") if extraction.ask else ""
    paragraphs = [greeting]
    if ask:
        paragraphs.append(f"I'm reaching out regarding the following: {ask}.")
    if slots:
        options = "\n".join(f"- {_format_slot(slot)}" for slot in slots)
        paragraphs.append(f"Would any of these times work for you?\n{options}")
    elif extraction.dates_times:
        paragraphs.append(f"Please let me know if {extraction.dates_times[0].text} works for you.")
    paragraphs.append("Looking forward to hearing from you.")
    body = "\n\n".join(paragraphs)

    closing = f"{CLOSINGS.get(tone, 'Best regards')},"
    sender = (profile.signature or profile.name or "").strip()
    signoff = f"{closing}\n{sender}" if sender else closing

    subject_words = (ask or intent.replace("_", " ")).split()[:6]
    subject = " ".join(subject_words).capitalize()

    return DraftCandidate(
        subject=subject,
        body=body,
        signoff=signoff,
        tone=tone,
        confidence=DRAFT_CONFIDENCE_BASE,
        word_count=word_count(body),
    )


def suggest_followup_actions(extraction: ExtractionResult, has_slots: bool) -> tuple[str, ...]:
    actions = ["send", "edit"]
    if has_slots:
        actions.append("add_to_calendar")
    if extraction.topics or len(extraction.ask) > 50:
        actions.append("save_template")
    if extraction.language != "en":
        actions.append("translate")
    if extraction.urgency == "high":
        actions.insert(0, "send_immediately")
    return tuple(actions)


def _format_slot(slot: TimeSlot) -> str:
    return f"{slot.start.strftime('%a %b %d, %I:%M %p')} - {slot.end.strftime('%I:%M %p')}"
