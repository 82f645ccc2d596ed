"""
Database models for the support service.

Importing this package registers every table on ``SQLModel.metadata``.
"""

from .user import User
from .agent import Agent, AgentNotificationPreferences
from .conversation import (
    Conversation,
    ConversationHandoff,
    ConversationInsight,
    ConversationMessage,
    ConversationParticipant,
)
from .issue import Attachment, Contact, EventLog, InternalNote, Issue, IssueLink

__all__ = [
    "User",
    "Agent",
    "AgentNotificationPreferences",
    "Conversation",
    "ConversationHandoff",
    "ConversationInsight",
    "ConversationMessage",
    "ConversationParticipant",
    "Attachment",
    "Contact",
    "EventLog",
    "InternalNote",
    "Issue",
    "IssueLink",
]
