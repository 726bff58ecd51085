"""Tests for quoted-thread / signature stripping and truncation."""

import pytest

from replyq.classification.normalizer import normalize_text


class TestNormalizeText:
    def test_strips_attribution_and_quoted_thread(self):
        text = (
            "Sounds good, see you then.\n\n"
            "On Tue, Mar 3, 2026 at 9:14 AM Jane <jane@example.com> wrote:\n"
            "> Can we meet Thursday?\n"
        )
        assert normalize_text(text) == "Sounds good, see you then."

    def test_strips_signature_separator(self):
        assert normalize_text("Thanks for the update.\n-- \nJane Doe\nCEO") == "Thanks for the update."

    def test_strips_outlook_header_block(self):
        text = "Please review.\nFrom: Bob\nSent: Monday\nTo: Jane\nSubject: Q3\nOld body"
        assert normalize_text(text) == "Please review."

    def test_strips_original_message_marker(self):
        text = "Approved.\n-----Original Message-----\nCan you approve?"
        assert normalize_text(text) == "Approved."

    def test_removes_inline_attachment_placeholders(self):
        assert normalize_text("See attached [cid:image001.png@01D]") == "See attached"

    def test_crlf_is_normalized(self):
        assert normalize_text("Hi\r\nthere") == "Hi\nthere"

    @pytest.mark.parametrize("empty", ["", None])
    def test_empty_input(self, empty):
        assert normalize_text(empty) == ""

    def test_truncates_with_ellipsis(self):
        result = normalize_text("a" * 2500)
        assert len(result) == 2003
        assert result.endswith("...")

    def test_custom_cap(self):
        assert normalize_text("abcdefghij", max_chars=4) == "abcd..."

    @pytest.mark.parametrize(
        "text",
        [
            "Plain request to schedule a call",
            "Reply above\n\n> quoted\n> more quoted\nOn Mon Bob wrote:\nolder",
            "Body\n__________\nDisclaimer text",
            "Line one\n\n\n\n\nLine two",
            "Top\n-- \nSig\nOn Fri X wrote:\n> nested",
        ],
    )
    def test_idempotent(self, text):
        once = normalize_text(text)
        assert normalize_text(once) == once
