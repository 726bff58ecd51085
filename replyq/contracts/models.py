"""
Stage result contracts.

Every result is a frozen pydantic model: a stage either returns a complete
record or raises, and nothing downstream can patch a field afterwards.
Collections are tuples so a cached ExtractionResult cannot be mutated by a
reader.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from replyq.config import SUGGESTIONS_TOP_N

Urgency = Literal["low", "medium", "high"]
Sentiment = Literal["positive", "neutral", "negative"]

URGENCY_VALUES: tuple[str, ...] = ("low", "medium", "high")
SENTIMENT_VALUES: tuple[str, ...] = ("positive", "neutral", "negative")

T = TypeVar("T")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Routing(_Frozen):
    """Where downstream execution code dispatches an intent."""

    endpoint: str
    method: str = "POST"
    estimated_latency_ms: int = Field(default=1000, ge=0)


class ClassificationResult(_Frozen):
    intent: str
    confidence: float = Field(ge=0.0, le=1.0)
    sub_category: str | None = None
    urgency: Urgency = "low"
    suggested_actions: tuple[str, ...] = ()
    required_data: tuple[str, ...] = ()
    routing: Routing
    is_fallback: bool = False
    rationale: str | None = None


class Person(_Frozen):
    name: str
    email: str | None = None
    role: str | None = None


class DateTimeMention(_Frozen):
    text: str
    parsed_iso: str | None = None
    kind: str = "event"


class LocationMention(_Frozen):
    text: str
    kind: str = "place"


class ExtractionResult(_Frozen):
    ask: str = ""
    constraints: tuple[str, ...] = ()
    people: tuple[Person, ...] = ()
    dates_times: tuple[DateTimeMention, ...] = ()
    locations: tuple[LocationMention, ...] = ()
    language: str = "en"
    sentiment: Sentiment = "neutral"
    urgency: Urgency = "medium"
    topics: tuple[str, ...] = ()
    action_items: tuple[str, ...] = ()
    model_used: str = "none"
    duration_ms: int = Field(default=0, ge=0)
    is_fallback: bool = False


class DraftCandidate(_Frozen):
    subject: str
    body: str
    signoff: str
    tone: str
    confidence: float = Field(ge=0.0, le=1.0)
    word_count: int = Field(ge=0)


class DraftResult(_Frozen):
    primary: DraftCandidate
    alternatives: tuple[DraftCandidate, ...] = ()
    suggested_actions: tuple[str, ...] = ()
    intent: str
    model_used: str
    duration_ms: int = Field(default=0, ge=0)
    language: str = "en"
    urgency: Urgency = "medium"
    is_fallback: bool = False


class ActionSuggestion(_Frozen):
    id: str
    intent: str
    label: str
    icon: str | None = None
    priority: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    rationale: str
    side_effect_payload: str | None = None


class SuggestionSet(_Frozen):
    """Full ranking plus the capped presentation view."""

    ranked: tuple[ActionSuggestion, ...] = ()
    top_n: int = SUGGESTIONS_TOP_N

    @property
    def top(self) -> tuple[ActionSuggestion, ...]:
        return self.ranked[: self.top_n]

    @property
    def primary(self) -> ActionSuggestion | None:
        return self.ranked[0] if self.ranked else None


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of coercing an untyped external payload."""

    ok: bool
    value: T | None = None
    reason: str | None = None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> Outcome[T]:
        return cls(ok=False, reason=reason)


class UserProfile(BaseModel):
    role: str | None = None
    company: str | None = None
    industry: str | None = None


class ClassificationContext(BaseModel):
    """Optional context passed to external classification."""

    thread_history: list[str] = Field(default_factory=list, max_length=20)
    user_profile: UserProfile | None = None
    recent_actions: list[str] = Field(default_factory=list, max_length=20)


class TimeSlot(BaseModel):
    start: datetime
    end: datetime


class DraftUserProfile(BaseModel):
    """Sender preferences applied to drafting."""

    name: str | None = None
    tone: str | None = None
    language: str | None = None
    signature: str | None = Field(default=None, max_length=500)


class ContactProfile(BaseModel):
    name: str | None = None
    email: str | None = None
    relationship: str | None = None
