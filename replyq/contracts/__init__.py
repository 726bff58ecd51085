"""Typed contracts shared between pipeline stages"""

from replyq.contracts.models import (
    ActionSuggestion,
    ClassificationContext,
    ClassificationResult,
    ContactProfile,
    DateTimeMention,
    DraftCandidate,
    DraftResult,
    DraftUserProfile,
    ExtractionResult,
    LocationMention,
    Outcome,
    Person,
    Routing,
    Sentiment,
    SuggestionSet,
    TimeSlot,
    Urgency,
    UserProfile,
)

__all__ = [
    "ActionSuggestion",
    "ClassificationContext",
    "ClassificationResult",
    "ContactProfile",
    "DateTimeMention",
    "DraftCandidate",
    "DraftResult",
    "DraftUserProfile",
    "ExtractionResult",
    "LocationMention",
    "Outcome",
    "Person",
    "Routing",
    "Sentiment",
    "SuggestionSet",
    "TimeSlot",
    "Urgency",
    "UserProfile",
]
