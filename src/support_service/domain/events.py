"""Domain events recorded by Issue aggregate methods."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class DomainEvent:
    issue_id: UUID
    occurred_at: datetime = field(default_factory=_utcnow, kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class IssueCreatedEvent(DomainEvent):
    reference_number: str


@dataclass(frozen=True)
class IssueStatusChangedEvent(DomainEvent):
    previous_status: str
    new_status: str


@dataclass(frozen=True)
class IssueResolvedEvent(DomainEvent):
    status: str
    resolution_notes: Optional[str] = None


@dataclass(frozen=True)
class IssueAssignedEvent(DomainEvent):
    previous_assignee_id: Optional[UUID]
    new_assignee_id: Optional[UUID]


@dataclass(frozen=True)
class IssueCommentAddedEvent(DomainEvent):
    comment: str
    author_id: Optional[UUID] = None
