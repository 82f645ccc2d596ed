# tests/factories/fixtures.py
"""
Row fixtures built from the factories.

Loaded through ``pytest_plugins`` in conftest.py.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.domain.enums import AgentStatus, ConversationMode
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import Agent, Conversation
from tests.factories.models import ConversationFactory, create_agent


@pytest.fixture
async def agent(db_session: AsyncSession) -> Agent:
    """Available agent with free capacity."""
    return await create_agent(db_session, status=AgentStatus.AVAILABLE)


@pytest.fixture
async def other_agent(db_session: AsyncSession) -> Agent:
    return await create_agent(db_session, status=AgentStatus.AVAILABLE)


@pytest.fixture
async def bot_conversation(db_session: AsyncSession) -> Conversation:
    return await ConversationFactory.create_async(db_session)


@pytest.fixture
async def escalated_conversation(db_session: AsyncSession) -> Conversation:
    """Conversation waiting in the escalation queue, nobody assigned."""
    return await ConversationFactory.create_async(
        db_session,
        mode=ConversationMode.ESCALATING,
        escalated_at=utcnow(),
        escalation_reason="Customer asked for a human",
    )


@pytest.fixture
async def assigned_conversation(db_session: AsyncSession, agent: Agent) -> Conversation:
    """Conversation held by ``agent``, whose load already counts it."""
    agent.active_conversation_count = 1
    db_session.add(agent)
    return await ConversationFactory.create_async(
        db_session,
        mode=ConversationMode.HUMAN,
        current_agent_id=agent.user_id,
        escalated_at=utcnow(),
    )
