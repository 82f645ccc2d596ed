# src/support_service/services/reference_numbers.py
"""Issue reference numbers of the form ``ISS-{year}-{sequence:06d}``."""
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from support_service.infrastructure.database.repositories import IssueRepository

REFERENCE_PREFIX = "ISS"
_MIN_LENGTH = 13
_SEQUENCE_START = 9


def reference_prefix(year: int) -> str:
    return f"{REFERENCE_PREFIX}-{year}-"


def next_sequence(reference_numbers: Iterable[str]) -> int:
    """
    Highest numeric sequence among ``reference_numbers`` plus one.

    Entries shorter than a full reference or with a non-numeric sequence
    part are ignored.
    """
    highest = 0
    for reference in reference_numbers:
        if len(reference) < _MIN_LENGTH:
            continue
        sequence = reference[_SEQUENCE_START:]
        if sequence.isdigit():
            highest = max(highest, int(sequence))
    return highest + 1


def format_reference_number(year: int, sequence: int) -> str:
    return f"{reference_prefix(year)}{sequence:06d}"


async def generate_reference_number(session: AsyncSession, year: Optional[int] = None) -> str:
    """
    Next free reference number for ``year`` (defaults to the current UTC year).

    The sequence restarts at 000001 every year.
    """
    year = year or datetime.now(timezone.utc).year
    existing = await IssueRepository(session).reference_numbers_with_prefix(reference_prefix(year))
    return format_reference_number(year, next_sequence(existing))
