"""Unit tests for issue reference number generation."""

from support_service.services.reference_numbers import (
    format_reference_number,
    generate_reference_number,
    next_sequence,
)
from tests.factories import IssueFactory


class TestNextSequence:
    def test_first_reference_of_the_year(self):
        assert next_sequence([]) == 1

    def test_continues_after_highest(self):
        assert next_sequence(["ISS-2025-000002", "ISS-2025-000010", "ISS-2025-000003"]) == 11

    def test_ignores_malformed_references(self):
        assert next_sequence(["ISS-2025-", "ISS-2025-00A001", "bad", "ISS-2025-000004"]) == 5


def test_format_pads_to_six_digits():
    assert format_reference_number(2025, 42) == "ISS-2025-000042"


class TestGenerateReferenceNumber:
    async def test_empty_table(self, db_session):
        assert await generate_reference_number(db_session, year=2025) == "ISS-2025-000001"

    async def test_sequence_is_per_year(self, db_session):
        await IssueFactory.create_async(db_session, reference_number="ISS-2024-000009")
        await IssueFactory.create_async(db_session, reference_number="ISS-2025-000003")

        assert await generate_reference_number(db_session, year=2025) == "ISS-2025-000004"
        assert await generate_reference_number(db_session, year=2024) == "ISS-2024-000010"
        assert await generate_reference_number(db_session, year=2026) == "ISS-2026-000001"
