"""Tests for keyword/phrase intent scoring, urgency and the intent catalog."""

import pytest

from replyq.classification.catalog import (
    DEFAULT_CATALOG,
    IntentCatalog,
    IntentPattern,
    load_catalog,
)
from replyq.classification.heuristic import HeuristicClassifier, derive_urgency
from replyq.contracts.models import Routing


def _pattern(name, keywords, phrases, base_weight=1.0):
    return IntentPattern(
        name=name,
        keywords=keywords,
        phrases=phrases,
        base_weight=base_weight,
        routing=Routing(endpoint=f"/api/{name}"),
    )


class TestHeuristicClassifier:
    def test_interview_scenario(self):
        result = HeuristicClassifier().classify("Let's schedule an interview tomorrow at 2pm, urgent")

        assert result.intent == "interview_scheduling"
        # 0.6 * 2/4 keywords + 0.4 * 1/5 phrases, times base weight 0.85
        assert result.confidence == pytest.approx(0.323)
        assert result.urgency == "high"
        assert result.is_fallback is True
        assert result.sub_category == "general_interview"
        assert result.routing.endpoint == "/api/calendar/schedule"
        assert "Send calendar invitation" in result.suggested_actions

    def test_no_match_returns_default_at_floor(self):
        result = HeuristicClassifier().classify("hello there")

        assert result.intent == "general_inquiry"
        assert result.confidence == 0.3
        assert result.urgency == "low"
        assert "floor" in result.rationale

    def test_score_is_capped_below_one(self):
        catalog = IntentCatalog(
            (_pattern("alpha", ("alpha",), ("alpha beta",), base_weight=2.0),),
            default_intent="alpha",
        )
        result = HeuristicClassifier(catalog).classify("alpha beta")
        assert result.confidence == 0.9

    def test_tie_keeps_earlier_catalog_entry(self):
        catalog = IntentCatalog(
            (
                _pattern("first", ("widget",), ()),
                _pattern("second", ("widget",), ()),
                _pattern("fallback", ("zzz",), ()),
            ),
            default_intent="fallback",
        )
        assert HeuristicClassifier(catalog).classify("widget").intent == "first"

    def test_score_must_beat_floor(self):
        # 0.6 * 1/2 = 0.3 exactly; not strictly above the floor
        catalog = IntentCatalog(
            (_pattern("half", ("one", "two"), ()), _pattern("other", ("zzz",), ())),
            default_intent="other",
        )
        result = HeuristicClassifier(catalog).classify("one")
        assert result.intent == "other"
        assert result.confidence == 0.3

    def test_sub_category_rules(self):
        classifier = HeuristicClassifier()
        assert classifier.sub_category("interview_scheduling", "Quick zoom interview") == "video_interview"
        assert classifier.sub_category("email_draft", "Draft a rejection note") == "rejection_email"
        assert classifier.sub_category("unknown", "anything") is None

    def test_build_result_rejects_unknown_intent(self):
        with pytest.raises(KeyError):
            HeuristicClassifier().build_result("book_flight", 0.5, "text", is_fallback=False)


class TestUrgency:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Need this ASAP", "high"),
            ("We need this today, follow up soon", "high"),
            ("Can we talk this week?", "medium"),
            ("Waiting on your reply", "medium"),
            ("Let it snow", "low"),
            ("Knowledge transfer notes", "low"),
        ],
    )
    def test_derive_urgency(self, text, expected):
        assert derive_urgency(text) == expected


class TestIntentCatalog:
    def test_default_catalog_contents(self):
        assert len(DEFAULT_CATALOG) == 8
        assert DEFAULT_CATALOG.default.name == "general_inquiry"
        assert "template_usage" in DEFAULT_CATALOG
        assert DEFAULT_CATALOG.names()[0] == "interview_scheduling"

    def test_duplicate_intent_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            IntentCatalog((_pattern("a", ("x",), ()), _pattern("a", ("y",), ())), default_intent="a")

    def test_missing_default_rejected(self):
        with pytest.raises(ValueError, match="Default intent"):
            IntentCatalog((_pattern("a", ("x",), ()),), default_intent="b")

    def test_load_catalog_from_yaml(self, tmp_path):
        path = tmp_path / "intents.yaml"
        path.write_text(
            """
default_intent: other
intents:
  - name: travel_booking
    keywords: [flight, hotel]
    phrases: [book a flight]
    base_weight: 1.0
    routing: {endpoint: /api/travel, method: POST, estimated_latency_ms: 1500}
    sub_categories:
      domestic: [domestic]
  - name: other
    keywords: [misc]
    phrases: []
    routing: {endpoint: /api/other}
""",
            encoding="utf-8",
        )

        catalog = load_catalog(path)
        result = HeuristicClassifier(catalog).classify("Please book a flight and hotel, domestic trip")

        assert catalog.names() == ("travel_booking", "other")
        assert result.intent == "travel_booking"
        assert result.sub_category == "domestic"
        assert result.routing.estimated_latency_ms == 1500

    def test_load_catalog_requires_intents(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("intents: []\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_catalog(path)
