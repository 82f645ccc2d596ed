"""Agent directory, profile commands and notification preferences."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.agents import (
    AgentDto,
    ConvertUserToAgentRequest,
    NotificationPreferencesDto,
    UpdateAgentStatusRequest,
    UpdatePreferencesRequest,
)
from support_service.api.schemas.errors import ErrorCode
from support_service.auth.schemas import UserInfo
from support_service.domain import error_messages as msg
from support_service.domain.enums import AgentStatus
from support_service.domain.result import Result
from support_service.infrastructure.cache import CacheKeys, CacheTags, TaggedCache
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import Agent, AgentNotificationPreferences
from support_service.infrastructure.database.repositories import (
    AgentRepository,
    NotificationPreferencesRepository,
    UserRepository,
)
from support_service.infrastructure.realtime import HubNotifier, connection_manager
from support_service.interfaces import INotifier

logger = logging.getLogger(__name__)

ALL_AGENTS_TTL = 1800


class AgentService:
    def __init__(
        self,
        session: AsyncSession,
        cache: TaggedCache,
        notifier: Optional[INotifier] = None,
    ):
        self.session = session
        self.cache = cache
        self.hub = HubNotifier(notifier or connection_manager)
        self.agents = AgentRepository(session)
        self.users = UserRepository(session)
        self.preferences = NotificationPreferencesRepository(session)

    # ========================================
    # Directory
    # ========================================

    async def list_agents(self) -> list[AgentDto]:
        """Every agent with its user, ordered by user name."""

        async def load() -> list[dict]:
            rows = await self.agents.list_with_users()
            return [AgentDto.from_agent(agent, user).model_dump(mode="json") for agent, user in rows]

        data = await self.cache.get_or_set(CacheKeys.ALL_AGENTS, load, tags=[CacheTags.AGENTS], ttl=ALL_AGENTS_TTL)
        return [AgentDto.model_validate(item) for item in data]

    async def get_agent(self, agent_id: UUID) -> Result[AgentDto]:
        found = await self.agents.get_with_user(agent_id)
        if found is None:
            return Result.failure(
                msg.AGENT_ID_NOT_FOUND_TEMPLATE.format(agent_id=agent_id),
                code=ErrorCode.AGENT_NOT_FOUND,
            )
        return Result.success(AgentDto.from_agent(*found))

    async def get_current_agent(self, user: Optional[UserInfo]) -> Result[Optional[AgentDto]]:
        """Agent profile of the caller; ``None`` when the caller is not an agent."""
        if user is None:
            return Result.failure(msg.USER_CONTEXT_NOT_AVAILABLE, code=ErrorCode.UNAUTHORIZED)

        found = await self.agents.get_with_user(user.id)
        return Result.success(AgentDto.from_agent(*found) if found else None)

    # ========================================
    # Profiles
    # ========================================

    async def convert_user_to_agent(self, request: ConvertUserToAgentRequest) -> Result[AgentDto]:

        """
        Give an existing user an agent profile.

        The profile starts Offline; the agent goes Available by updating
        their status.
        """
        user = await self.users.get(request.user_id)
        if user is None:
            return Result.failure(
                msg.USER_NOT_FOUND_TEMPLATE.format(user_id=request.user_id),
                code=ErrorCode.USER_NOT_FOUND,
            )

        if await self.agents.get_by_user_id(user.id) is not None:
            return Result.failure(
                msg.USER_ALREADY_AGENT_TEMPLATE.format(user_name=user.user_name),
                code=ErrorCode.DUPLICATE_RESOURCE,
            )

        try:
            agent = await self.agents.create(
                Agent(
                    user_id=user.id,
                    status=AgentStatus.OFFLINE,
                    max_concurrent_conversations=request.max_concurrent_conversations,
                    active_conversation_count=0,
                    priority=request.priority,
                    skills=request.skills,
                    notes=request.notes,
                    last_active_at=utcnow(),
                    tenant_id=user.tenant_id,
                )
            )
        except SQLAlchemyError:
            logger.exception("Failed to convert user to agent", extra={"user_id": str(user.id)})
            return Result.failure(msg.CONVERT_TO_AGENT_FAILED, code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.AGENTS, CacheTags.TRANSFER)
        logger.info("User converted to agent", extra={"user_id": str(user.id), "agent_id": str(agent.id)})
        return Result.success(AgentDto.from_agent(agent, user))

    async def update_agent_status(self, agent_id: UUID, request: UpdateAgentStatusRequest) -> Result[AgentDto]:
        found = await self.agents.get_with_user(agent_id)
        if found is None:
            return Result.failure(
                msg.AGENT_ID_NOT_FOUND_TEMPLATE.format(agent_id=agent_id),
                code=ErrorCode.AGENT_NOT_FOUND,
            )
        agent, user = found

        try:
            agent.status = request.status
            agent.last_active_at = utcnow()
            await self.agents.save(agent)
        except SQLAlchemyError:
            logger.exception("Failed to update agent status", extra={"agent_id": str(agent_id)})
            return Result.failure(msg.UPDATE_AGENT_STATUS_FAILED, code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.AGENTS, CacheTags.TRANSFER)
        await self.hub.agent_status_changed(str(agent_id), request.status.value)

        logger.info("Agent status changed", extra={"agent_id": str(agent_id), "status": request.status.value})
        return Result.success(AgentDto.from_agent(agent, user))

    # ========================================
    # Notification preferences
    # ========================================

    async def get_preferences(self, user: Optional[UserInfo]) -> Result[NotificationPreferencesDto]:
        """Stored preferences of the caller, or the defaults when none were saved."""
        if user is None or not user.tenant_id:
            return Result.failure(msg.USER_CONTEXT_NOT_AVAILABLE, code=ErrorCode.UNAUTHORIZED)

        stored = await self.preferences.get_for_user(user.id, user.tenant_id)
        if stored is None:
            return Result.success(NotificationPreferencesDto())
        return Result.success(NotificationPreferencesDto.model_validate(stored))

    async def update_preferences(
        self,
        user: Optional[UserInfo],
        request: UpdatePreferencesRequest,
    ) -> Result[NotificationPreferencesDto]:
        if user is None or not user.tenant_id:
            return Result.failure(msg.USER_CONTEXT_NOT_AVAILABLE, code=ErrorCode.UNAUTHORIZED)

        values = request.model_dump()
        values["audio_volume"] = max(0, min(100, request.audio_volume))

        try:
            stored = await self.preferences.get_for_user(user.id, user.tenant_id)
            if stored is None:
                stored = await self.preferences.create(
                    AgentNotificationPreferences(user_id=user.id, tenant_id=user.tenant_id, **values)
                )
            else:
                for key, value in values.items():
                    setattr(stored, key, value)
                await self.preferences.save(stored)
        except SQLAlchemyError as e:
            logger.exception("Failed to update agent preferences", extra={"user_id": str(user.id)})
            return Result.failure(msg.UPDATE_PREFERENCES_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.PREFERENCES)
        return Result.success(NotificationPreferencesDto.model_validate(stored))
