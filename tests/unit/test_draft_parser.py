"""Tests for splitting generated email prose and scoring drafts."""

import pytest

from replyq.contracts.models import DateTimeMention, ExtractionResult, Person
from replyq.drafting.parser import compute_draft_confidence, parse_email_content, word_count


class TestParseEmailContent:
    def test_subject_body_signoff(self):
        parsed = parse_email_content(
            "Subject: Interview next week\n\nHi Jane,\n\nCould we meet Tuesday?\n\nBest regards,\nSam"
        )
        assert parsed.subject == "Interview next week"
        assert parsed.body == "Hi Jane,\n\nCould we meet Tuesday?"
        assert parsed.signoff == "Best regards,\nSam"

    def test_subject_falls_back_to_first_line(self):
        parsed = parse_email_content("Quick question\nAre you free Friday?")
        assert parsed.subject == "Quick question"
        assert parsed.body == "Quick question\nAre you free Friday?"
        assert parsed.signoff == ""

    @pytest.mark.parametrize("prefix", ["Re:", "FW:", "subject:"])
    def test_subject_prefixes(self, prefix):
        assert parse_email_content(f"{prefix} Budget\nBody text").subject == "Budget"

    def test_opening_thanks_is_not_signoff(self):
        content = "Subject: Update\nThanks for the update on the role.\nLine two\nLine three\nLine four\nLine five"
        parsed = parse_email_content(content)
        assert parsed.signoff == ""
        assert parsed.body.startswith("Thanks for the update")

    def test_empty(self):
        parsed = parse_email_content("   \n  ")
        assert (parsed.subject, parsed.body, parsed.signoff) == ("", "", "")


class TestDraftConfidence:
    def test_base(self):
        assert compute_draft_confidence(ExtractionResult(), has_slots=False) == 0.5

    def test_full_context_is_capped(self):
        extraction = ExtractionResult(
            ask="Schedule an interview with Jane",
            people=(Person(name="Jane"),),
            dates_times=(DateTimeMention(text="Tuesday"),),
            topics=("hiring",),
            sentiment="positive",
            urgency="high",
        )
        assert compute_draft_confidence(extraction, has_slots=True) == 0.95

    def test_partial_context(self):
        extraction = ExtractionResult(ask="Schedule an interview", people=(Person(name="Jane"),))
        assert compute_draft_confidence(extraction, has_slots=False) == 0.7


def test_word_count():
    assert word_count("one two\nthree  four") == 4
