"""
Intent catalog: the statically-known intents and their routing metadata.

The catalog is an immutable value passed into the classifiers, never module
state mutated at runtime. Tests swap it by constructing their own
IntentCatalog. Routing is only ever taken from a catalog entry, so an intent
name that reaches downstream dispatch code always resolves.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from replyq.config import DEFAULT_INTENT
from replyq.contracts.models import Routing


@dataclass(frozen=True)
class IntentPattern:
    """Scoring inputs and downstream metadata for one intent."""

    name: str
    keywords: tuple[str, ...]
    phrases: tuple[str, ...]
    base_weight: float
    routing: Routing
    required_data: tuple[str, ...] = ()
    suggested_actions: tuple[str, ...] = ()
    # Ordered (label, trigger terms); first rule with a hit wins
    sub_categories: tuple[tuple[str, tuple[str, ...]], ...] = ()
    default_sub_category: str | None = None
    description: str = ""


@dataclass(frozen=True)
class IntentCatalog:
    patterns: tuple[IntentPattern, ...]
    default_intent: str = DEFAULT_INTENT
    _index: dict[str, IntentPattern] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, IntentPattern] = {}
        for pattern in self.patterns:
            if pattern.name in index:
                raise ValueError(f"Duplicate intent in catalog: {pattern.name}")
            index[pattern.name] = pattern
        if self.default_intent not in index:
            raise ValueError(f"Default intent {self.default_intent!r} missing from catalog")
        object.__setattr__(self, "_index", index)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[IntentPattern]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    def get(self, name: str) -> IntentPattern | None:
        return self._index.get(name)

    @property
    def default(self) -> IntentPattern:
        return self._index[self.default_intent]

    def names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.patterns)


DEFAULT_CATALOG = IntentCatalog(
    patterns=(
        IntentPattern(
            name="interview_scheduling",
            description="Scheduling interviews or meetings",
            keywords=("interview", "schedule", "meeting", "time slots"),
            phrases=(
                "schedule an interview",
                "set up a meeting",
                "available for",
                "book a call",
                "interview time",
            ),
            base_weight=0.85,
            routing=Routing(endpoint="/api/calendar/schedule", method="POST", estimated_latency_ms=3000),
            required_data=("candidate_info", "time_preferences", "interview_type"),
            suggested_actions=(
                "Check calendar availability",
                "Prepare interview questions",
                "Send calendar invitation",
                "Confirm interview format and logistics",
            ),
            sub_categories=(
                ("phone_interview", ("phone", "call")),
                ("video_interview", ("video", "zoom", "teams")),
                ("onsite_interview", ("onsite", "office")),
            ),
            default_sub_category="general_interview",
        ),
        IntentPattern(
            name="follow_up",
            description="Following up on communications or status",
            keywords=("follow up", "following up", "check in", "status", "update", "heard back", "response"),
            phrases=(
                "following up on",
                "checking in about",
                "any updates on",
                "status update",
                "have you heard",
            ),
            base_weight=0.75,
            routing=Routing(endpoint="/api/follow-up/create", method="POST", estimated_latency_ms=2000),
            required_data=("original_context", "follow_up_reason", "timeline"),
            suggested_actions=(
                "Review previous communication",
                "Set follow-up reminder",
                "Prepare status update",
                "Schedule next touchpoint",
            ),
            sub_categories=(
                ("urgent_followup", ("urgent", "asap")),
                ("decision_followup", ("decision", "feedback")),
            ),
            default_sub_category="standard_followup",
        ),
        IntentPattern(
            name="email_draft",
            description="Composing or drafting emails",
            keywords=("write", "draft", "compose", "email", "send", "message", "reach out"),
            phrases=("draft an email", "write a message", "compose email", "send email to", "reach out to"),
            base_weight=0.85,
            routing=Routing(endpoint="/api/draft", method="POST", estimated_latency_ms=5000),
            required_data=("recipient", "purpose", "tone", "key_points"),
            suggested_actions=(
                "Choose appropriate template",
                "Customize message tone",
                "Review recipient context",
                "Schedule send time",
            ),
            sub_categories=(
                ("rejection_email", ("rejection", "decline")),
                ("offer_email", ("offer", "congratulations")),
                ("invitation_email", ("invitation", "invite")),
            ),
            default_sub_category="general_email",
        ),
        IntentPattern(
            name="calendar_management",
            description="Managing calendar events",
            keywords=("calendar", "reschedule", "cancel", "book", "availability", "busy", "free time"),
            phrases=(
                "check calendar",
                "reschedule meeting",
                "cancel appointment",
                "book time",
                "availability check",
            ),
            base_weight=0.8,
            routing=Routing(endpoint="/api/calendar/manage", method="POST", estimated_latency_ms=2000),
            required_data=("calendar_action", "event_details", "new_time"),
            suggested_actions=(
                "Check current availability",
                "Review conflicting events",
                "Send meeting updates",
                "Block focus time",
            ),
        ),
        IntentPattern(
            name="candidate_research",
            description="Researching candidates or contacts",
            keywords=("research", "background", "profile", "linkedin", "experience", "skills", "qualifications"),
            phrases=(
                "research candidate",
                "check background",
                "candidate profile",
                "look up",
                "find information",
            ),
            base_weight=0.7,
            routing=Routing(endpoint="/api/research/candidate", method="POST", estimated_latency_ms=7000),
            required_data=("candidate_identifier", "research_depth", "focus_areas"),
            suggested_actions=(
                "Review LinkedIn profile",
                "Check references",
                "Analyze skills match",
                "Prepare interview questions",
            ),
        ),
        IntentPattern(
            name="template_usage",
            description="Using or managing email templates",
            keywords=("template", "use template", "standard message", "boilerplate", "saved draft"),
            phrases=("use template", "apply template", "standard email", "saved message", "template for"),
            base_weight=0.9,
            routing=Routing(endpoint="/api/templates", method="GET", estimated_latency_ms=1000),
            required_data=("template_category", "customization_data"),
            suggested_actions=(
                "Browse available templates",
                "Customize template variables",
                "Preview final message",
                "Save personalized version",
            ),
        ),
        IntentPattern(
            name="status_inquiry",
            description="Checking status or progress",
            keywords=("status", "progress", "update", "where are we", "current state", "next steps"),
            phrases=(
                "what's the status",
                "progress update",
                "where do we stand",
                "next steps",
                "current status",
            ),
            base_weight=0.7,
            routing=Routing(endpoint="/api/status/check", method="GET", estimated_latency_ms=1000),
            required_data=("context_id", "status_type"),
            suggested_actions=(
                "Summarize current progress",
                "List open items",
                "Share next steps",
            ),
        ),
        IntentPattern(
            name="general_inquiry",
            description="General questions or help",
            keywords=("help", "question", "how to", "what is", "explain", "clarify"),
            phrases=("can you help", "i have a question", "how do i", "what does", "please explain"),
            base_weight=0.5,
            routing=Routing(endpoint="/api/help/general", method="POST", estimated_latency_ms=2000),
            required_data=("query_type", "context"),
            suggested_actions=(
                "Clarify specific needs",
                "Provide relevant resources",
                "Suggest next steps",
                "Schedule follow-up if needed",
            ),
        ),
    )
)


def load_catalog(path: Path) -> IntentCatalog:
    """
    Build a catalog from a YAML file.

    Expected shape::

        default_intent: general_inquiry
        intents:
          - name: interview_scheduling
            keywords: [interview, schedule]
            phrases: [schedule an interview]
            base_weight: 0.85
            routing: {endpoint: /api/calendar/schedule, method: POST, estimated_latency_ms: 3000}
            sub_categories:
              phone_interview: [phone, call]

    Raises:
        ValueError: Missing intents, duplicate names, or unknown default intent
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("intents") or []
    if not entries:
        raise ValueError(f"No intents defined in {path}")

    patterns = tuple(
        IntentPattern(
            name=entry["name"],
            description=entry.get("description", ""),
            keywords=tuple(entry.get("keywords", ())),
            phrases=tuple(entry.get("phrases", ())),
            base_weight=float(entry.get("base_weight", 1.0)),
            routing=Routing(**entry["routing"]),
            required_data=tuple(entry.get("required_data", ())),
            suggested_actions=tuple(entry.get("suggested_actions", ())),
            sub_categories=tuple(
                (label, tuple(terms)) for label, terms in (entry.get("sub_categories") or {}).items()
            ),
            default_sub_category=entry.get("default_sub_category"),
        )
        for entry in entries
    )
    return IntentCatalog(patterns, default_intent=data.get("default_intent", DEFAULT_INTENT))
