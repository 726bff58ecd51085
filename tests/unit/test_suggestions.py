"""Tests for action suggestion generation, ranking and handoff payloads."""

import json

import pytest

from replyq.contracts.models import (
    ActionSuggestion,
    DateTimeMention,
    ExtractionResult,
    LocationMention,
    Person,
)
from replyq.observability.telemetry import get_counter
from replyq.suggestions import (
    DEFAULT_RATIONALE,
    HANDOFF_TARGETS,
    SuggestionAggregator,
    analyze_content,
    build_handoff_payload,
    build_rationale,
    collect_entities,
    rank,
    truncate_notes,
)

SCENARIO = "Let's schedule an interview tomorrow at 2pm, urgent"


def _ids(suggestion_set):
    return [s.id for s in suggestion_set.ranked]


class TestAnalyzeContent:
    def test_scenario_signals(self):
        signals = analyze_content(SCENARIO)
        assert signals.has_scheduling_keywords
        assert signals.has_time_references
        assert not signals.has_questions
        assert signals.is_urgent
        assert signals.length == 51
        assert signals.cross_module == ("hire",)

    @pytest.mark.parametrize("text", ["at 10:30", "around 3 pm", "Tuesday morning"])
    def test_time_references(self, text):
        assert analyze_content(text).has_time_references


class TestSuggestionAggregator:
    def test_scenario_ranking(self):
        result = SuggestionAggregator().aggregate(SCENARIO, "interview_scheduling", 0.32)

        assert _ids(result) == ["schedule", "add_calendar", "reply", "handoff_optihire"]
        schedule = result.primary
        assert schedule.priority == 95
        assert schedule.confidence == 0.779
        assert schedule.rationale == "Found time cues; proposing slots removes friction."
        reply = result.ranked[2]
        assert reply.priority == 60
        assert reply.confidence == 0.574
        assert get_counter("suggest.generated") == 4

    def test_questions_raise_reply(self):
        result = SuggestionAggregator().aggregate("Can you send the report?", "general_inquiry", 0.3)
        assert _ids(result) == ["reply"]
        assert result.primary.priority == 85
        assert result.primary.rationale.startswith("Detected direct questions")

    def test_scheduling_intent_without_cues(self):
        result = SuggestionAggregator().aggregate("ok", "calendar_management", 0.5)
        assert _ids(result) == ["schedule"]
        assert result.primary.priority == 80
        assert result.primary.confidence == 0.8

    def test_calendar_context(self):
        result = SuggestionAggregator().aggregate("ok", "general_inquiry", 0.5, has_calendar_context=True)
        assert _ids(result) == ["schedule", "add_calendar"]

    def test_auto_send_needs_recipients(self):
        text = "Quick one: are you in?"
        without = SuggestionAggregator().aggregate(text, "general_inquiry", 0.9)
        with_recipients = SuggestionAggregator().aggregate(
            text, "general_inquiry", 0.9, recipients=["jane@example.com"]
        )

        assert "auto_send" not in _ids(without)
        auto_send = next(s for s in with_recipients.ranked if s.id == "auto_send")
        assert auto_send.label == "Auto-Send (3s)"
        assert auto_send.priority == 80
        assert auto_send.rationale.startswith("High confidence with known recipient")

    def test_low_confidence_withholds_auto_send(self):
        result = SuggestionAggregator().aggregate(
            "Can you send the report asap?", "general_inquiry", 0.05, recipients=["a@b.com"]
        )
        assert _ids(result) == ["reply"]

    def test_auto_send_follows_supplied_threshold(self):
        text = "Can you send the report asap?"
        aggregator = SuggestionAggregator(autosend_threshold=0.6)

        assert "auto_send" in _ids(aggregator.aggregate(text, "general_inquiry", 0.7, recipients=["a@b.com"]))
        assert "auto_send" not in _ids(
            aggregator.aggregate(
                text, "general_inquiry", 0.7, recipients=["a@b.com"], autosend_threshold=0.75
            )
        )

    def test_low_confidence_damps_suggestion_confidence(self):
        result = SuggestionAggregator().aggregate("ok", "calendar_management", 0.2)
        assert result.primary.priority == 80
        assert result.primary.confidence == 0.56

    def test_suggestions_carry_detected_intent(self):
        result = SuggestionAggregator().aggregate(SCENARIO, "interview_scheduling", 0.8)
        by_id = {s.id: s for s in result.ranked}

        assert by_id["schedule"].intent == "interview_scheduling"
        assert by_id["reply"].intent == "interview_scheduling"
        assert by_id["handoff_optihire"].intent == "route_hire"

    def test_template_usage_boost(self):
        result = SuggestionAggregator().aggregate("same reply again", "template_usage", 0.6)
        template = next(s for s in result.ranked if s.id == "save_template")
        assert template.priority == 75
        assert template.confidence == 0.85

    def test_translate_and_summarize(self):
        long_text = "palabra " * 60
        result = SuggestionAggregator().aggregate(
            long_text, "general_inquiry", 0.3, extraction=ExtractionResult(language="es")
        )
        assert {"translate", "summarize", "save_template", "reply"} <= set(_ids(result))

    def test_top_n_view(self):
        text = (
            "Can we schedule a call at 10:30 again? Urgent: need hotel pricing for the candidate trip. "
            + "x" * 400
        )
        result = SuggestionAggregator(top_n=3).aggregate(
            text,
            "interview_scheduling",
            0.9,
            extraction=ExtractionResult(language="fr"),
            recipients=["a@b.co"],
        )
        assert len(result.ranked) > 3
        assert result.top == result.ranked[:3]
        assert len({s.id for s in result.ranked}) == len(result.ranked)

    def test_every_handoff_target(self):
        result = SuggestionAggregator().aggregate(
            "Book a flight, order a laptop, and review the candidate resume", "general_inquiry", 0.3
        )
        handoffs = [s for s in result.ranked if s.id.startswith("handoff_")]
        assert [s.id for s in handoffs] == ["handoff_optitrip", "handoff_optishop", "handoff_optihire"]
        assert [s.intent for s in handoffs] == ["route_trip", "route_shop", "route_hire"]
        assert all(s.rationale == DEFAULT_RATIONALE for s in handoffs)
        assert all(s.side_effect_payload for s in handoffs)


def test_rank_is_stable():
    def make(sid, priority, confidence):
        return ActionSuggestion(
            id=sid, intent=sid, label=sid, priority=priority, confidence=confidence, rationale="r"
        )

    ranked = rank([make("a", 50, 0.5), make("b", 70, 0.5), make("c", 50, 0.9), make("d", 50, 0.5)])
    assert [s.id for s in ranked] == ["b", "c", "a", "d"]


class TestHandoff:
    def test_payload_shape(self):
        extraction = ExtractionResult(
            ask="Book a flight to Denver for the offsite",
            people=(Person(name="Jane", email="jane@example.com"), Person(name="Bob")),
            dates_times=(DateTimeMention(text="next Friday", parsed_iso="2026-10-23"),),
            locations=(LocationMention(text="Denver"),),
            topics=("offsite", "travel"),
        )
        payload = json.loads(build_handoff_payload(HANDOFF_TARGETS["travel"], extraction, "raw"))

        assert payload["module"] == "optitrip"
        assert payload["intent"] == "route_trip"
        assert payload["notes"] == "Book a flight to Denver for the offsite"
        assert payload["entities"] == [
            {"type": "person", "value": "jane@example.com"},
            {"type": "person", "value": "Bob"},
            {"type": "datetime", "value": "2026-10-23"},
            {"type": "location", "value": "Denver"},
            {"type": "topic", "value": "offsite"},
        ]
        assert get_counter("handoff.optitrip") == 1

    def test_notes_fall_back_to_text_and_truncate(self):
        payload = json.loads(build_handoff_payload(HANDOFF_TARGETS["shop"], None, "buy " * 100))
        assert payload["entities"] == []
        assert len(payload["notes"]) <= 280
        assert payload["notes"].endswith("...")

    def test_truncate_notes_collapses_whitespace(self):
        assert truncate_notes("a\n\n  b\tc") == "a b c"

    def test_collect_entities_limit(self):
        extraction = ExtractionResult(topics=("a", "b", "c"))
        assert len(collect_entities(extraction, limit=2)) == 2
        assert collect_entities(None) == []


@pytest.mark.parametrize(
    ("kind", "kwargs", "expected"),
    [
        ("reply", {}, "A timely response keeps momentum and clarity."),
        ("schedule", {}, "Suggesting times speeds up scheduling."),
        ("auto_send", {}, "High confidence; auto-send available with quick cancel."),
        ("unknown", {"has_questions": True}, DEFAULT_RATIONALE),
    ],
)
def test_build_rationale(kind, kwargs, expected):
    assert build_rationale(kind, **kwargs) == expected
