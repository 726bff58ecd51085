"""Tests for external extraction, regex fallback, coercion and caching."""

import json

import pytest

from replyq.classification.extractor import (
    EntityExtractor,
    cache_key,
    coerce_extraction,
    coerce_sentiment,
    coerce_urgency,
    fallback_extract,
)
from replyq.observability.telemetry import get_counter
from replyq.storage.cache import TTLCache

SAMPLE = "Reach out to jane@example.com about Friday's sync"

FULL_PAYLOAD = {
    "ask": "Set up a sync with Jane",
    "constraints": ["before Friday"],
    "people": [{"name": "Jane", "email": "jane@example.com", "role": "manager"}, "Bob", {"role": "x"}],
    "dates_times": [{"text": "Friday", "parsed": "2026-10-23", "type": "meeting"}],
    "locations": ["Zoom"],
    "language": "EN",
    "sentiment": "Positive",
    "urgency": "urgent",
    "topics": ["sync", ""],
    "actionItems": ["email Jane"],
}


class TestFallbackExtract:
    def test_emails_and_dates(self):
        result = fallback_extract(SAMPLE)

        assert len(result.people) == 1
        assert result.people[0].name == "jane"
        assert result.people[0].email == "jane@example.com"
        assert result.people[0].role == "contact"
        assert [d.text for d in result.dates_times] == ["Friday"]
        assert result.is_fallback is True
        assert result.model_used == "regex-fallback"
        assert result.sentiment == "neutral"
        assert result.urgency == "medium"

    def test_duplicates_collapsed(self):
        result = fallback_extract("cc a@x.io and A@x.io on monday, Monday works")
        assert len(result.people) == 1
        assert len(result.dates_times) == 1

    def test_long_ask_truncated(self):
        result = fallback_extract("word " * 40)
        assert result.ask.endswith("...")
        assert len(result.ask) == 103

    def test_empty_text(self):
        result = fallback_extract("")
        assert result.people == ()
        assert result.dates_times == ()


class TestCoerceExtraction:
    def test_full_payload(self):
        outcome = coerce_extraction(FULL_PAYLOAD, source_text=SAMPLE, model_used="m", duration_ms=12)
        result = outcome.value

        assert outcome.ok
        assert result.ask == "Set up a sync with Jane"
        assert [p.name for p in result.people] == ["Jane", "Bob"]
        assert result.dates_times[0].parsed_iso == "2026-10-23"
        assert result.dates_times[0].kind == "meeting"
        assert result.locations[0].text == "Zoom"
        assert result.language == "en"
        assert result.sentiment == "positive"
        assert result.urgency == "high"
        assert result.topics == ("sync",)
        assert result.action_items == ("email Jane",)
        assert result.is_fallback is False

    def test_missing_fields_default(self):
        result = coerce_extraction({}, source_text="hello", model_used="m", duration_ms=0).value
        assert result.people == ()
        assert result.constraints == ()
        assert result.sentiment == "neutral"
        assert result.urgency == "medium"
        assert result.language == "en"

    def test_scalar_in_place_of_list(self):
        result = coerce_extraction(
            {"topics": "hiring", "people": None}, source_text="x", model_used="m", duration_ms=0
        ).value
        assert result.topics == ("hiring",)
        assert result.people == ()

    def test_non_object_rejected(self):
        assert not coerce_extraction("text", source_text="x", model_used="m", duration_ms=0).ok

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("negative", "negative"), ("NEG", "negative"), ("positively", "positive"), (None, "neutral"), (3, "neutral")],
    )
    def test_coerce_sentiment(self, value, expected):
        assert coerce_sentiment(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("High", "high"), ("ASAP", "high"), ("minimal", "low"), ("whenever", "medium"), (None, "medium")],
    )
    def test_coerce_urgency(self, value, expected):
        assert coerce_urgency(value) == expected


class TestEntityExtractor:
    def test_external_result(self, fake_llm):
        llm = fake_llm(response="Here it is: " + json.dumps(FULL_PAYLOAD))
        result = EntityExtractor(llm_call_fn=llm).extract(SAMPLE)

        assert result.is_fallback is False
        assert result.people[0].email == "jane@example.com"
        assert get_counter("extract.external.success") == 1

    def test_failure_uses_regex_fallback(self, fake_llm):
        result = EntityExtractor(llm_call_fn=fake_llm(response="no json here")).extract(SAMPLE)
        assert result.is_fallback is True
        assert result.people[0].email == "jane@example.com"

    def test_thread_context_in_prompt(self, fake_llm):
        llm = fake_llm(response=json.dumps(FULL_PAYLOAD))
        EntityExtractor(llm_call_fn=llm).extract(SAMPLE, thread_context="Earlier: agenda attached")
        assert "Earlier: agenda attached" in llm.calls[0][0]

    def test_cache_hit_skips_call_and_returns_same_object(self, fake_llm):
        llm = fake_llm(response=json.dumps(FULL_PAYLOAD))
        extractor = EntityExtractor(llm_call_fn=llm)

        first, first_cached = extractor.extract_with_status(SAMPLE)
        second, second_cached = extractor.extract_with_status(SAMPLE)

        assert first_cached is False
        assert second_cached is True
        assert second is first
        assert llm.call_count == 1

    def test_fallback_results_are_cached(self, fake_llm):
        llm = fake_llm(error=RuntimeError("boom"))
        extractor = EntityExtractor(llm_call_fn=llm)

        extractor.extract(SAMPLE)
        result, cached = extractor.extract_with_status(SAMPLE)

        assert cached is True
        assert result.is_fallback is True
        assert llm.call_count == 1

    def test_cache_expires_after_ttl(self, fake_llm, fake_clock):
        llm = fake_llm(response=json.dumps(FULL_PAYLOAD))
        cache = TTLCache(name="extraction", ttl_seconds=60, clock=fake_clock)
        extractor = EntityExtractor(llm_call_fn=llm, cache=cache)

        extractor.extract(SAMPLE)
        fake_clock.advance(59)
        extractor.extract(SAMPLE)
        fake_clock.advance(1)
        extractor.extract(SAMPLE)

        assert llm.call_count == 2

    def test_key_is_raw_text(self):
        assert cache_key("Hi\n> quoted") != cache_key("Hi")
