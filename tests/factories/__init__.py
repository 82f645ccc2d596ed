# tests/factories/__init__.py
"""Factory Boy factories for support service rows."""

from tests.factories.base import AsyncSQLModelFactory
from tests.factories.models import (
    AgentFactory,
    ConversationFactory,
    IssueFactory,
    UserFactory,
    create_agent,
)

__all__ = [
    "AsyncSQLModelFactory",
    "AgentFactory",
    "ConversationFactory",
    "IssueFactory",
    "UserFactory",
    "create_agent",
]
