# src/support_service/infrastructure/database/repositories/agent.py
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.domain.enums import AgentStatus
from support_service.infrastructure.database.models import Agent, AgentNotificationPreferences, User
from support_service.infrastructure.database.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_user_name(self, user_name: str) -> User | None:
        return await self.first(select(User).where(User.user_name == user_name))

    async def names_for(self, user_ids: Iterable[UUID | None]) -> dict[UUID, str]:
        """Map user ids to display names (falling back to user names)."""
        ids = {user_id for user_id in user_ids if user_id is not None}
        if not ids:
            return {}
        users = await self.all(select(User).where(User.id.in_(ids)))
        return {user.id: user.effective_name for user in users}


class AgentRepository(BaseRepository[Agent]):
    """Agent lookups. Agents are addressed by the owning user id."""

    def __init__(self, session: AsyncSession):
        super().__init__(Agent, session)

    async def get_by_user_id(self, user_id: UUID) -> Agent | None:
        return await self.first(select(Agent).where(Agent.user_id == user_id))

    async def get_with_user(self, user_id: UUID) -> tuple[Agent, User] | None:
        query = (
            select(Agent, User)
            .join(User, User.id == Agent.user_id)
            .where(Agent.user_id == user_id)
            .limit(1)
        )
        row = (await self.session.execute(query)).first()
        return (row[0], row[1]) if row else None

    async def list_with_users(self) -> list[tuple[Agent, User]]:
        query = select(Agent, User).join(User, User.id == Agent.user_id).order_by(User.user_name)
        rows = (await self.session.execute(query)).all()
        return [(agent, user) for agent, user in rows]

    async def list_online_with_users(self, exclude_user_id: UUID | None = None) -> list[tuple[Agent, User]]:
        """Agents whose status is anything but Offline, with their users."""
        query = (
            select(Agent, User)
            .join(User, User.id == Agent.user_id)
            .where(Agent.status != AgentStatus.OFFLINE)
        )
        if exclude_user_id is not None:
            query = query.where(Agent.user_id != exclude_user_id)
        rows = (await self.session.execute(query)).all()
        return [(agent, user) for agent, user in rows]

    async def list_assignable(self, tenant_id: str) -> Sequence[Agent]:
        """Available agents of a tenant that still have free capacity, oldest profile first."""
        query = (
            select(Agent)
            .where(
                Agent.tenant_id == tenant_id,
                Agent.status == AgentStatus.AVAILABLE,
                Agent.active_conversation_count < Agent.max_concurrent_conversations,
            )
            .order_by(Agent.created_at, Agent.id)
        )
        return await self.all(query)


class NotificationPreferencesRepository(BaseRepository[AgentNotificationPreferences]):
    def __init__(self, session: AsyncSession):
        super().__init__(AgentNotificationPreferences, session)

    async def get_for_user(self, user_id: UUID, tenant_id: str) -> AgentNotificationPreferences | None:
        query = select(AgentNotificationPreferences).where(
            AgentNotificationPreferences.user_id == user_id,
            AgentNotificationPreferences.tenant_id == tenant_id,
        )
        return await self.first(query)
