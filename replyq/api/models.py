"""Pydantic request/response models for the ReplyQ API.

Request bodies bound every free-text field; anything malformed is rejected by
FastAPI with a sanitized 422 before reaching a stage.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from replyq.config import API_TEXT_MAX_CHARS
from replyq.contracts.models import (
    ActionSuggestion,
    ClassificationContext,
    ClassificationResult,
    ContactProfile,
    DraftCandidate,
    DraftUserProfile,
    ExtractionResult,
    TimeSlot,
)


class _TextRequest(BaseModel):
    text: str = Field(min_length=1, max_length=API_TEXT_MAX_CHARS)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be blank")
        return v


# ============================================================================
# Stage requests
# ============================================================================


class ClassifyRequest(_TextRequest):
    context: ClassificationContext | None = None


class ExtractRequest(_TextRequest):
    thread_context: str | None = Field(default=None, max_length=API_TEXT_MAX_CHARS)


class ExtractResponse(BaseModel):
    extraction: ExtractionResult
    cached: bool


class DraftRequest(_TextRequest):
    intent: str = Field(min_length=1, max_length=64)
    extraction: ExtractionResult = Field(default_factory=ExtractionResult)
    slots: list[TimeSlot] = Field(default_factory=list, max_length=10)
    user_profile: DraftUserProfile | None = None
    contact_profile: ContactProfile | None = None


class DraftMetadata(BaseModel):
    intent: str
    model_used: str
    duration_ms: int
    language: str
    urgency: str
    is_fallback: bool


class DraftResponse(BaseModel):
    primary: DraftCandidate
    alternatives: list[DraftCandidate]
    suggested_actions: list[str]
    metadata: DraftMetadata


class SuggestionsRequest(_TextRequest):
    intent: str = Field(min_length=1, max_length=64)
    confidence: float = Field(ge=0.0, le=1.0)
    extraction: ExtractionResult | None = None
    recipients: list[str] = Field(default_factory=list, max_length=50)
    has_calendar_context: bool = False


class SuggestionsResponse(BaseModel):
    suggestions: list[ActionSuggestion]
    ranked: list[ActionSuggestion]
    primary: ActionSuggestion | None


class ProcessRequest(_TextRequest):
    context: ClassificationContext | None = None
    thread_context: str | None = Field(default=None, max_length=API_TEXT_MAX_CHARS)
    slots: list[TimeSlot] = Field(default_factory=list, max_length=10)
    user_profile: DraftUserProfile | None = None
    contact_profile: ContactProfile | None = None
    recipients: list[str] = Field(default_factory=list, max_length=50)
    has_calendar_context: bool = False
    context_id: str | None = Field(default=None, min_length=1, max_length=128)
    auto_send: bool = False


class ProcessResponse(BaseModel):
    classification: ClassificationResult
    extraction: ExtractionResult
    extraction_cached: bool
    draft: DraftResponse
    suggestions: list[ActionSuggestion]
    ranked: list[ActionSuggestion]
    confidence: float
    autosend_eligible: bool
    autosend: dict[str, Any] | None = None


# ============================================================================
# Auto-send
# ============================================================================


class AutoSendStartRequest(_TextRequest):
    context_id: str = Field(min_length=1, max_length=128)
    draft_ref: str = Field(min_length=1, max_length=256)
    confidence: float = Field(ge=0.0, le=1.0)


class AutoSendContextRequest(BaseModel):
    context_id: str = Field(min_length=1, max_length=128)


class AutoSendResponse(BaseModel):
    state: str
    session: dict[str, Any] | None = None
    threshold: float | None = None


# ============================================================================
# Templates
# ============================================================================


class SaveTemplateRequest(BaseModel):
    # Content rules (non-empty name, minimum length) are enforced by the
    # storage layer so they surface as 400s.
    name: str = Field(max_length=200)
    content: str = Field(max_length=API_TEXT_MAX_CHARS)
    category: str = Field(default="general", max_length=64)
    intent: str | None = Field(default=None, max_length=64)
    tone: str | None = Field(default=None, max_length=32)
    language: str = Field(default="en", max_length=8)
