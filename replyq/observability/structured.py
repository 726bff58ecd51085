"""
Structured Logging Kit for ReplyQ

Provides one-line JSON event logging with:
- Correlation via session_id + hashed context_id
- Event taxonomy per pipeline stage (classify, extract, draft, suggest, autosend, storage)
- Sampling (INFO configurable, ERROR always)
- Privacy redaction of free text (emails, phone numbers)

Usage:
    from replyq.observability.structured import EventType, get_logger

    get_logger().log_event(
        EventType.CLASSIFY_FALLBACK,
        stage="classify",
        duration_ms=412,
        fallback_used=True,
        reason="ParseError",
    )

Output:
    {"ts":"2026-10-17T09:12:01.004+00:00","level":"WARNING","session":"20261017_091200","event":"classify_fallback","stage":"classify","duration_ms":412,"fallback_used":true,"reason":"ParseError"}
"""

from __future__ import annotations

import hmac
import json
import logging
import random
import re
import secrets
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger("replyq.structured")

_EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_PHONE_PATTERN = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")

# Free-text fields that are redacted before emission
_TEXT_FIELDS = frozenset({"text", "ask", "notes", "subject", "body"})


class EventType(str, Enum):
    """Event taxonomy covering each pipeline stage"""

    # 1. Classification
    CLASSIFY_OK = "classify_ok"
    CLASSIFY_FALLBACK = "classify_fallback"

    # 2. Extraction
    EXTRACT_CACHE_HIT = "extract_cache_hit"
    EXTRACT_OK = "extract_ok"
    EXTRACT_FALLBACK = "extract_fallback"

    # 3. Drafting
    DRAFT_OK = "draft_ok"
    DRAFT_FALLBACK = "draft_fallback"
    DRAFT_ALTERNATIVE_FAILED = "draft_alternative_failed"

    # 4. Suggestions
    SUGGEST_RANKED = "suggest_ranked"
    HANDOFF_BUILT = "handoff_built"

    # 5. Auto-send
    AUTOSEND_STARTED = "autosend_started"
    AUTOSEND_REJECTED = "autosend_rejected"
    AUTOSEND_COMMITTED = "autosend_committed"
    AUTOSEND_CANCELLED = "autosend_cancelled"
    AUTOSEND_SEND_ERROR = "autosend_send_error"

    # 6. Downstream storage
    STORAGE_WRITE_OK = "storage_write_ok"
    STORAGE_UNAVAILABLE = "storage_unavailable"

    # 7. External capability
    LLM_CIRCUIT_OPEN = "llm_circuit_open"


EVENT_SEVERITY = {
    EventType.CLASSIFY_OK: logging.INFO,
    EventType.CLASSIFY_FALLBACK: logging.WARNING,
    EventType.EXTRACT_CACHE_HIT: logging.DEBUG,
    EventType.EXTRACT_OK: logging.INFO,
    EventType.EXTRACT_FALLBACK: logging.WARNING,
    EventType.DRAFT_OK: logging.INFO,
    EventType.DRAFT_FALLBACK: logging.WARNING,
    EventType.DRAFT_ALTERNATIVE_FAILED: logging.WARNING,
    EventType.SUGGEST_RANKED: logging.DEBUG,
    EventType.HANDOFF_BUILT: logging.INFO,
    EventType.AUTOSEND_STARTED: logging.INFO,
    EventType.AUTOSEND_REJECTED: logging.DEBUG,
    EventType.AUTOSEND_COMMITTED: logging.INFO,
    EventType.AUTOSEND_CANCELLED: logging.INFO,
    EventType.AUTOSEND_SEND_ERROR: logging.ERROR,
    EventType.STORAGE_WRITE_OK: logging.INFO,
    EventType.STORAGE_UNAVAILABLE: logging.ERROR,
    EventType.LLM_CIRCUIT_OPEN: logging.WARNING,
}


class SafeJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles common non-serializable types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, "__dict__"):
            return str(obj)
        return super().default(obj)


class StructuredLogger:
    """
    Structured event logger with sampling and privacy redaction

    - Correlation via session_id (process run) + context_id (short HMAC)
    - Sampling: INFO/DEBUG at sample_rate_info, ERROR/CRITICAL always
    - One-line JSON output for easy parsing
    """

    def __init__(self, session_id: str | None = None, sample_rate_info: float = 1.0):
        self.session_id = session_id or datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        self.sample_rate_info = sample_rate_info
        self._salt = secrets.token_bytes(32)

    def hash_context_id(self, context_id: str) -> str:
        if not context_id:
            return "unknown"
        h = hmac.new(self._salt, context_id.encode("utf-8"), "sha256")
        return h.hexdigest()[:16]

    @staticmethod
    def redact_text(text: str, max_len: int = 80) -> str:
        """Truncate free text and mask emails and phone numbers."""
        if not text:
            return ""
        truncated = _EMAIL_PATTERN.sub("[EMAIL]", text[:max_len])
        truncated = _PHONE_PATTERN.sub("[PHONE]", truncated)
        return truncated + ("..." if len(text) > max_len else "")

    def _should_log(self, event_type: EventType) -> bool:
        severity = EVENT_SEVERITY.get(event_type, logging.INFO)
        if severity >= logging.ERROR:
            return True
        return random.random() < self.sample_rate_info

    def log_event(
        self,
        event_type: EventType,
        context_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Log a structured event

        Side Effects:
            - Writes one-line JSON entry to the "replyq.structured" logger
        """
        if not self._should_log(event_type):
            return

        severity = EVENT_SEVERITY.get(event_type, logging.INFO)
        event: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": logging.getLevelName(severity),
            "session": self.session_id,
            "event": event_type.value,
        }
        if context_id:
            event["context"] = self.hash_context_id(context_id)

        for key, value in kwargs.items():
            if key in _TEXT_FIELDS and isinstance(value, str):
                event[key] = self.redact_text(value)
            elif isinstance(value, str) and len(value) > 200:
                event[key] = value[:200] + "..."
            else:
                event[key] = value

        try:
            json_line = json.dumps(event, separators=(",", ":"), cls=SafeJSONEncoder)
            logger.log(severity, json_line)
        except (TypeError, ValueError) as e:
            logger.error("structured_log_error: failed to serialize event type=%s error=%s", event_type, e)

    def stage_result(
        self,
        stage: str,
        event_type: EventType,
        duration_ms: int,
        fallback_used: bool,
        reason: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Log the outcome of one pipeline stage with its standard metric fields."""
        self.log_event(
            event_type,
            stage=stage,
            duration_ms=duration_ms,
            fallback_used=fallback_used,
            reason=reason,
            **kwargs,
        )


_global_logger: StructuredLogger | None = None


def get_logger(session_id: str | None = None) -> StructuredLogger:
    """Get or create the process-wide structured logger."""
    global _global_logger
    if _global_logger is None or (session_id and session_id != _global_logger.session_id):
        _global_logger = StructuredLogger(session_id=session_id)
    return _global_logger
