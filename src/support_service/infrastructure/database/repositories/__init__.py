"""Repositories over the SQLModel entities."""

from .base import BaseRepository, PaginatedResult
from .agent import AgentRepository, NotificationPreferencesRepository, UserRepository
from .conversation import (
    ConversationMessageRepository,
    ConversationRepository,
    HandoffRepository,
    InsightRepository,
    ParticipantRepository,
    parse_uuid,
)
from .issue import (
    AttachmentRepository,
    ContactRepository,
    EventLogRepository,
    IssueLinkRepository,
    IssueRepository,
)

__all__ = [
    "BaseRepository",
    "PaginatedResult",
    "AgentRepository",
    "NotificationPreferencesRepository",
    "UserRepository",
    "ConversationMessageRepository",
    "ConversationRepository",
    "HandoffRepository",
    "InsightRepository",
    "ParticipantRepository",
    "parse_uuid",
    "AttachmentRepository",
    "ContactRepository",
    "EventLogRepository",
    "IssueLinkRepository",
    "IssueRepository",
]
