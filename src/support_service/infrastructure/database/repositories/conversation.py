# src/support_service/infrastructure/database/repositories/conversation.py
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.domain.enums import HandoffStatus, ParticipantType
from support_service.infrastructure.database.models import (
    Conversation,
    ConversationHandoff,
    ConversationInsight,
    ConversationMessage,
    ConversationParticipant,
)
from support_service.infrastructure.database.repositories.base import BaseRepository


def parse_uuid(value: str | UUID | None) -> UUID | None:
    """Parse a UUID, returning None for anything that is not one."""
    if isinstance(value, UUID):
        return value
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


class ConversationRepository(BaseRepository[Conversation]):
    """
    Conversation lookups.

    Clients address conversations either by the channel reference or by the
    row id, so both resolution orders are offered.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Conversation, session)

    async def get_by_reference(self, reference: str) -> Conversation | None:
        return await self.first(select(Conversation).where(Conversation.reference == reference))

    async def find_by_reference_or_id(self, value: str) -> Conversation | None:
        conversation = await self.get_by_reference(value)
        if conversation is None:
            conversation_id = parse_uuid(value)
            if conversation_id is not None:
                conversation = await self.get(conversation_id)
        return conversation

    async def find_by_id_or_reference(self, value: str) -> Conversation | None:
        conversation_id = parse_uuid(value)
        if conversation_id is not None:
            conversation = await self.get(conversation_id)
            if conversation is not None:
                return conversation
        return await self.get_by_reference(value)


class ConversationMessageRepository(BaseRepository[ConversationMessage]):
    def __init__(self, session: AsyncSession):
        super().__init__(ConversationMessage, session)

    async def list_for_conversation(
        self,
        conversation_id: UUID,
        since: datetime | None = None,
        after: datetime | None = None,
        limit: int | None = None,
    ) -> Sequence[ConversationMessage]:
        """Messages in timestamp order. ``since`` is inclusive, ``after`` exclusive."""
        query = select(ConversationMessage).where(ConversationMessage.conversation_id == conversation_id)
        if since is not None:
            query = query.where(ConversationMessage.timestamp >= since)
        if after is not None:
            query = query.where(ConversationMessage.timestamp > after)
        query = query.order_by(ConversationMessage.timestamp, ConversationMessage.created_at)
        if limit is not None:
            query = query.limit(limit)
        return await self.all(query)

    async def latest(self, conversation_id: UUID) -> ConversationMessage | None:
        query = (
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.timestamp.desc())
        )
        return await self.first(query)


class HandoffRepository(BaseRepository[ConversationHandoff]):
    def __init__(self, session: AsyncSession):
        super().__init__(ConversationHandoff, session)

    async def latest_with_status(self, conversation_id: UUID, status: HandoffStatus) -> ConversationHandoff | None:
        query = (
            select(ConversationHandoff)
            .where(
                ConversationHandoff.conversation_id == conversation_id,
                ConversationHandoff.status == status,
            )
            .order_by(ConversationHandoff.initiated_at.desc(), ConversationHandoff.created_at.desc())
        )
        return await self.first(query)

    async def list_for_conversation(self, conversation_id: UUID) -> Sequence[ConversationHandoff]:
        query = (
            select(ConversationHandoff)
            .where(ConversationHandoff.conversation_id == conversation_id)
            .order_by(ConversationHandoff.initiated_at)
        )
        return await self.all(query)


class ParticipantRepository(BaseRepository[ConversationParticipant]):
    def __init__(self, session: AsyncSession):
        super().__init__(ConversationParticipant, session)

    async def customer_for(self, conversation_id: UUID) -> ConversationParticipant | None:
        query = select(ConversationParticipant).where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.type == ParticipantType.CUSTOMER,
        )
        return await self.first(query)


class InsightRepository(BaseRepository[ConversationInsight]):
    def __init__(self, session: AsyncSession):
        super().__init__(ConversationInsight, session)

    async def exists_for(self, conversation_id: UUID) -> bool:
        query = select(ConversationInsight.id).where(ConversationInsight.conversation_id == conversation_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None
