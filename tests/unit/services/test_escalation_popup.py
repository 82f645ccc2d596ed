"""Unit tests for the helpers that build the escalation popup."""

import pytest

from support_service.services.escalation_popup import (
    UNKNOWN_CUSTOMER,
    count_transcript_messages,
    customer_name_from_phone,
    determine_priority,
    extract_last_user_message,
    truncate_transcript,
)

TRANSCRIPT = "User: my card was charged twice\nBot: I can help with that\nUser: I want to talk to a person\nBot: Connecting you"


class TestDeterminePriority:
    @pytest.mark.parametrize(
        "reason,expected",
        [
            ("URGENT: account locked", 3),
            ("medical emergency", 3),
            ("Critical outage", 3),
            ("high value customer", 2),
            ("this is important", 2),
            ("asked for a human", 1),
            ("", 1),
            (None, 1),
        ],
    )
    def test_keywords(self, reason, expected):
        assert determine_priority(reason) == expected

    def test_critical_wins_over_high(self):
        assert determine_priority("high priority and urgent") == 3


class TestExtractLastUserMessage:
    def test_skips_bot_lines_from_the_end(self):
        assert extract_last_user_message(TRANSCRIPT) == "I want to talk to a person"

    def test_customer_prefix_is_stripped(self):
        assert extract_last_user_message("Customer:   where is my order?") == "where is my order?"

    def test_unprefixed_line_counts_as_customer(self):
        """Lines without a speaker marker are treated as the customer's."""
        assert extract_last_user_message("Bot: hello\nplain text reply\nAgent: noted") == "plain text reply"

    def test_no_customer_line(self):
        assert extract_last_user_message("Bot: hello\nAgent: hi") is None

    @pytest.mark.parametrize("transcript", [None, "", "\n\n"])
    def test_empty_transcript(self, transcript):
        assert extract_last_user_message(transcript) is None


class TestTranscriptHelpers:
    def test_counts_speaker_markers(self):
        assert count_transcript_messages(TRANSCRIPT) == 4

    def test_counts_list_items(self):
        assert count_transcript_messages("Summary\n- first\n- second") == 2

    def test_count_of_nothing(self):
        assert count_transcript_messages(None) == 0

    def test_short_transcript_is_kept(self):
        assert truncate_transcript("short", max_length=10) == "short"

    def test_long_transcript_gets_ellipsis(self):
        assert truncate_transcript("x" * 25, max_length=10) == "x" * 10 + "..."

    def test_empty_transcript_has_no_summary(self):
        assert truncate_transcript("") is None


class TestCustomerName:
    def test_phone_gets_plus_prefix(self):
        assert customer_name_from_phone("447700900123") == "+447700900123"

    def test_phone_with_plus_is_unchanged(self):
        assert customer_name_from_phone("+447700900123") == "+447700900123"

    def test_missing_phone(self):
        assert customer_name_from_phone(None) == UNKNOWN_CUSTOMER
