"""
Issue (support ticket) models.

Issue mutation methods return the domain events they produce. The issue
service persists them as EventLog rows, so callers never have to remember
which change emits which event.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, Index, Text, UniqueConstraint
from sqlmodel import Field

from support_service.domain.enums import IssueCategory, IssueLinkType, IssuePriority, IssueStatus
from support_service.domain.events import (
    DomainEvent,
    IssueAssignedEvent,
    IssueCommentAddedEvent,
    IssueCreatedEvent,
    IssueResolvedEvent,
    IssueStatusChangedEvent,
)
from support_service.infrastructure.database.base_model import BaseModel, TenantMixin, enum_type, utcnow


class Contact(BaseModel, TenantMixin, table=True):
    """Customer reachable on a messaging channel, identified by phone number."""

    __tablename__ = "contacts"

    phone_number: str = Field(nullable=False, max_length=20, index=True)
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class Issue(BaseModel, TenantMixin, table=True):
    """
    Support ticket.

    Attributes:
        reference_number: Human readable id, ``ISS-{year}-{n:06d}`` (unique)
        title / description: Ticket text
        category / priority / status: Classification
        reporter_contact_id: Contact that reported the issue
        assigned_user_id: Staff member working on it
        source_message_ids: Ids of the channel messages the ticket was built from
        whatsapp_metadata: JSON blob with intake details (channel, product, severity...)
        duplicate_of_id: Canonical issue when this one is a duplicate
        conversation_id: Conversation the issue was raised from

    Example:
        >>> issue, event = Issue.create(reference_number="ISS-2025-000001", title="App crashes")
        >>> event.reference_number
        'ISS-2025-000001'
    """

    __tablename__ = "issues"

    reference_number: str = Field(nullable=False, unique=True, index=True, max_length=50)
    title: str = Field(nullable=False, max_length=200)
    description: Optional[str] = Field(default=None, sa_type=Text)
    category: IssueCategory = Field(
        default=IssueCategory.GENERAL,
        sa_type=enum_type(IssueCategory),
        nullable=False,
    )
    priority: IssuePriority = Field(
        default=IssuePriority.MEDIUM,
        sa_type=enum_type(IssuePriority),
        nullable=False,
    )
    status: IssueStatus = Field(
        default=IssueStatus.NEW,
        sa_type=enum_type(IssueStatus),
        nullable=False,
        index=True,
    )
    reporter_contact_id: Optional[UUID] = Field(default=None, foreign_key="contacts.id")
    assigned_user_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True)
    source_message_ids: list[str] = Field(default_factory=list, sa_type=JSON)
    whatsapp_metadata: Optional[str] = Field(default=None, sa_type=Text)
    consent_flag: bool = Field(default=False)
    reporter_phone: Optional[str] = Field(default=None, max_length=20)
    reporter_name: Optional[str] = Field(default=None, max_length=100)
    channel: Optional[str] = Field(default=None, max_length=50)
    product: Optional[str] = Field(default=None, max_length=100)
    severity: Optional[str] = Field(default=None, max_length=20)
    summary: Optional[str] = Field(default=None, max_length=200)
    resolution_notes: Optional[str] = Field(default=None, max_length=2000)
    duplicate_of_id: Optional[UUID] = Field(default=None, foreign_key="issues.id")
    conversation_id: Optional[UUID] = Field(default=None, foreign_key="conversations.id")

    __table_args__ = (
        Index("ix_issues_tenant_status_priority", "tenant_id", "status", "priority"),
    )

    @classmethod
    def create(
        cls,
        reference_number: str,
        title: str,
        description: Optional[str] = None,
        category: IssueCategory = IssueCategory.GENERAL,
        priority: IssuePriority = IssuePriority.MEDIUM,
        **fields: Any,
    ) -> tuple["Issue", IssueCreatedEvent]:
        issue = cls(
            reference_number=reference_number,
            title=title,
            description=description,
            category=category,
            priority=priority,
            status=IssueStatus.NEW,
            **fields,
        )
        return issue, IssueCreatedEvent(issue_id=issue.id, reference_number=reference_number)

    def change_status(self, new_status: IssueStatus) -> list[DomainEvent]:
        """Move to ``new_status``. Returns no events when the status is unchanged."""
        previous = self.status
        if previous == new_status:
            return []

        self.status = new_status
        events: list[DomainEvent] = [
            IssueStatusChangedEvent(
                issue_id=self.id,
                previous_status=previous.value,
                new_status=new_status.value,
            )
        ]
        if new_status in (IssueStatus.RESOLVED, IssueStatus.CLOSED):
            events.append(
                IssueResolvedEvent(
                    issue_id=self.id,
                    status=new_status.value,
                    resolution_notes=self.resolution_notes,
                )
            )
        return events

    def assign_to(self, user_id: Optional[UUID]) -> list[DomainEvent]:
        previous = self.assigned_user_id
        if previous == user_id:
            return []
        self.assigned_user_id = user_id
        return [
            IssueAssignedEvent(
                issue_id=self.id,
                previous_assignee_id=previous,
                new_assignee_id=user_id,
            )
        ]

    def add_comment(self, comment: str, author_id: Optional[UUID] = None) -> IssueCommentAddedEvent:
        return IssueCommentAddedEvent(issue_id=self.id, comment=comment, author_id=author_id)

    def resolve(self, notes: Optional[str] = None) -> list[DomainEvent]:
        if notes:
            self.resolution_notes = notes
        return self.change_status(IssueStatus.RESOLVED)


class IssueLink(BaseModel, TenantMixin, table=True):
    """
    Directed relation between two issues (parent → child).

    System links are proposed by automatic duplicate detection and carry a
    confidence score; manual links are created by staff and carry none.
    """

    __tablename__ = "issue_links"

    parent_issue_id: UUID = Field(foreign_key="issues.id", nullable=False, index=True)
    child_issue_id: UUID = Field(foreign_key="issues.id", nullable=False, index=True)
    link_type: IssueLinkType = Field(sa_type=enum_type(IssueLinkType), nullable=False)
    confidence_score: Optional[float] = Field(default=None)
    created_by_system: bool = Field(default=False)
    link_metadata: Optional[str] = Field(default=None, max_length=1000)

    __table_args__ = (
        UniqueConstraint("parent_issue_id", "child_issue_id", name="uq_issue_links_parent_child"),
    )

    @classmethod
    def create_system_link(
        cls,
        parent_issue_id: UUID,
        child_issue_id: UUID,
        link_type: IssueLinkType,
        confidence_score: float,
        tenant_id: str,
        metadata: Optional[str] = None,
    ) -> "IssueLink":
        return cls(
            parent_issue_id=parent_issue_id,
            child_issue_id=child_issue_id,
            link_type=link_type,
            confidence_score=confidence_score,
            created_by_system=True,
            link_metadata=metadata,
            tenant_id=tenant_id,
        )

    @classmethod
    def create_manual_link(
        cls,
        parent_issue_id: UUID,
        child_issue_id: UUID,
        link_type: IssueLinkType,
        tenant_id: str,
        metadata: Optional[str] = None,
    ) -> "IssueLink":
        return cls(
            parent_issue_id=parent_issue_id,
            child_issue_id=child_issue_id,
            link_type=link_type,
            confidence_score=None,
            created_by_system=False,
            link_metadata=metadata,
            tenant_id=tenant_id,
        )


class EventLog(BaseModel, TenantMixin, table=True):
    """Audit trail entry attached to an issue."""

    __tablename__ = "event_logs"

    issue_id: UUID = Field(foreign_key="issues.id", nullable=False, index=True)
    type: str = Field(nullable=False, max_length=100)
    payload: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_by: Optional[str] = Field(default=None, max_length=450)


class InternalNote(BaseModel, TenantMixin, table=True):
    __tablename__ = "internal_notes"

    issue_id: UUID = Field(foreign_key="issues.id", nullable=False, index=True)
    content: str = Field(nullable=False, sa_type=Text)
    author_id: Optional[UUID] = Field(default=None, foreign_key="users.id")


class Attachment(BaseModel, TenantMixin, table=True):
    __tablename__ = "attachments"

    issue_id: UUID = Field(foreign_key="issues.id", nullable=False, index=True)
    url: str = Field(nullable=False, max_length=2000)
    content_type: str = Field(nullable=False, max_length=100)
    size_bytes: int = Field(default=0)
    scan_status: str = Field(default="Pending", max_length=20)
    uploaded_at: datetime = Field(default_factory=utcnow, nullable=False)
