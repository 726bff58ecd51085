"""
Cross-module handoff payloads.

The serialized JSON string is the only thing a sibling module receives:
``{"module", "intent", "entities", "notes"}`` with at most five entities and
notes capped at 280 characters.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from replyq.config import HANDOFF_MAX_ENTITIES, HANDOFF_NOTES_MAX_CHARS
from replyq.contracts.models import ExtractionResult
from replyq.observability.structured import EventType, get_logger
from replyq.observability.telemetry import counter


@dataclass(frozen=True)
class HandoffTarget:
    module: str
    intent: str
    label: str
    icon: str


HANDOFF_TARGETS: dict[str, HandoffTarget] = {
    "travel": HandoffTarget("optitrip", "route_trip", "Open in OptiTrip", "airplane"),
    "shop": HandoffTarget("optishop", "route_shop", "Open in OptiShop", "shopping-bag"),
    "hire": HandoffTarget("optihire", "route_hire", "Open in OptiHire", "briefcase"),
}


def collect_entities(
    extraction: ExtractionResult | None, limit: int = HANDOFF_MAX_ENTITIES
) -> list[dict[str, str]]:
    """Flatten extracted entities into ``{"type", "value"}`` pairs, first ``limit`` only."""
    if extraction is None or limit <= 0:
        return []
    entities: list[dict[str, str]] = []
    for person in extraction.people:
        entities.append({"type": "person", "value": person.email or person.name})
    for mention in extraction.dates_times:
        entities.append({"type": "datetime", "value": mention.parsed_iso or mention.text})
    for location in extraction.locations:
        entities.append({"type": "location", "value": location.text})
    for topic in extraction.topics:
        entities.append({"type": "topic", "value": topic})
    return entities[:limit]


def truncate_notes(notes: str, limit: int = HANDOFF_NOTES_MAX_CHARS) -> str:
    notes = " ".join(notes.split())
    if len(notes) <= limit:
        return notes
    return notes[: limit - 3].rstrip() + "..."


def build_handoff_payload(
    target: HandoffTarget,
    extraction: ExtractionResult | None,
    text: str,
) -> str:
    """Compact JSON string for the receiving module."""
    notes_source = extraction.ask if extraction is not None and extraction.ask else text
    payload = {
        "module": target.module,
        "intent": target.intent,
        "entities": collect_entities(extraction),
        "notes": truncate_notes(notes_source),
    }
    counter(f"handoff.{target.module}")
    get_logger().log_event(
        EventType.HANDOFF_BUILT,
        stage="suggest",
        module=target.module,
        entities=len(payload["entities"]),
    )
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
