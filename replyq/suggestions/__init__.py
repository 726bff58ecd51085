"""
ReplyQ Suggestions module - ranked next actions and cross-module handoffs.
"""

from replyq.suggestions.aggregator import (
    ContentSignals,
    SuggestionAggregator,
    analyze_content,
    rank,
    scale_confidence,
)
from replyq.suggestions.handoff import (
    HANDOFF_TARGETS,
    HandoffTarget,
    build_handoff_payload,
    collect_entities,
    truncate_notes,
)
from replyq.suggestions.rationale import DEFAULT_RATIONALE, build_rationale

__all__ = [
    # Aggregation
    "ContentSignals",
    "SuggestionAggregator",
    "analyze_content",
    "rank",
    "scale_confidence",
    # Handoff
    "HANDOFF_TARGETS",
    "HandoffTarget",
    "build_handoff_payload",
    "collect_entities",
    "truncate_notes",
    # Rationale
    "DEFAULT_RATIONALE",
    "build_rationale",
]
