"""
Automatic assignment of escalated conversations to agents.

Settings are kept per tenant in the cache (they are operator toggles, not
records). The agent picked last is remembered per tenant so round robin
continues where it left off.
"""

import logging
import random
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.agents import (
    AutoAssignmentResult,
    AutoAssignmentSettingsDto,
    UpdateAutoAssignmentSettingsRequest,
)
from support_service.api.schemas.errors import ErrorCode
from support_service.config.settings import Settings, get_settings
from support_service.domain import error_messages as msg
from support_service.domain.enums import AssignmentStrategy
from support_service.domain.result import Result
from support_service.infrastructure.cache import TaggedCache
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import Agent
from support_service.infrastructure.database.repositories import AgentRepository, UserRepository

logger = logging.getLogger(__name__)

LAST_ASSIGNED_TTL = 300

AssignCallable = Callable[[str, UUID], Awaitable[Result]]


def settings_key(tenant_id: str) -> str:
    return f"auto_assignment_settings_{tenant_id}"


def last_assigned_key(tenant_id: str) -> str:
    return f"last_assigned_agent_{tenant_id}"


def round_robin_order(candidates: Sequence[Agent], last_user_id: Optional[str]) -> list[Agent]:
    """
    Candidates rotated to start right after the agent assigned last time.

    With candidates ``[a1, a2, a3]`` and ``a2`` assigned last, the order is
    ``[a3, a1, a2]``.
    """
    ordered = list(candidates)
    ids = [str(agent.user_id) for agent in ordered]
    if last_user_id in ids:
        start = ids.index(last_user_id) + 1
        ordered = ordered[start:] + ordered[:start]
    return ordered


def least_loaded_order(candidates: Sequence[Agent]) -> list[Agent]:
    return sorted(candidates, key=lambda a: (a.active_conversation_count, a.workload_percentage))


class AutoAssignmentService:
    """
    Picks an agent for a conversation and hands it to ``assign``.

    ``assign`` is the conversation service's ``assign_agent`` command, so
    the availability checks and side effects of a manual assignment apply
    unchanged.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: TaggedCache,
        assign: AssignCallable,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session = session
        self.cache = cache
        self.assign = assign
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self.agents = AgentRepository(session)
        self.users = UserRepository(session)

    async def get_settings(self, tenant_id: str) -> AutoAssignmentSettingsDto:
        cached = await self.cache.get(settings_key(tenant_id))
        if cached is not None:
            return AutoAssignmentSettingsDto.model_validate(cached)
        return AutoAssignmentSettingsDto(
            tenant_id=tenant_id,
            is_enabled=self.settings.auto_assignment_enabled,
        )

    async def update_settings(
        self,
        tenant_id: str,
        request: UpdateAutoAssignmentSettingsRequest,
        modified_by: Optional[str] = None,
    ) -> Result[AutoAssignmentSettingsDto]:
        try:
            updated = AutoAssignmentSettingsDto(
                tenant_id=tenant_id,
                last_modified=utcnow(),
                last_modified_by=modified_by,
                **request.model_dump(),
            )
            await self.cache.set(
                settings_key(tenant_id),
                updated.model_dump(mode="json"),
                ttl=self.settings.auto_assignment_settings_ttl,
            )
        except Exception as e:
            logger.exception("Failed to store auto-assignment settings", extra={"tenant_id": tenant_id})
            return Result.failure(msg.UPDATE_AUTO_ASSIGNMENT_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        logger.info(
            "Auto-assignment settings updated",
            extra={"tenant_id": tenant_id, "enabled": updated.is_enabled, "strategy": updated.strategy.value},
        )
        return Result.success(updated)

    async def _ordered_candidates(
        self,
        strategy: AssignmentStrategy,
        candidates: Sequence[Agent],
        tenant_id: str,
    ) -> list[Agent]:
        if strategy == AssignmentStrategy.LEAST_LOADED:
            return least_loaded_order(candidates)
        if strategy == AssignmentStrategy.RANDOM:
            shuffled = list(candidates)
            self.rng.shuffle(shuffled)
            return shuffled
        last_user_id = await self.cache.get(last_assigned_key(tenant_id))
        return round_robin_order(candidates, last_user_id)

    async def assign_conversation(self, reference: str, tenant_id: str) -> Result[AutoAssignmentResult]:
        """
        Assign ``reference`` to an agent of ``tenant_id``.

        Business outcomes ("disabled", "no agents") are successful results
        carrying ``was_assigned=False``; only unexpected errors fail.
        Up to ``max_retry_attempts`` candidates are tried in strategy order.
        """
        try:
            config = await self.get_settings(tenant_id)
            if not config.is_enabled:
                return Result.success(AutoAssignmentResult.failed(msg.AUTO_ASSIGNMENT_DISABLED))

            candidates = await self.agents.list_assignable(tenant_id)
            if not candidates:
                return Result.success(AutoAssignmentResult.failed(msg.NO_AVAILABLE_AGENTS))

            ordered = await self._ordered_candidates(config.strategy, candidates, tenant_id)
            last_error = msg.NO_AVAILABLE_AGENTS
            for agent in ordered[: max(1, config.max_retry_attempts)]:
                result = await self.assign(reference, agent.user_id)
                if result.failed:
                    last_error = result.error_message
                    continue

                await self.cache.set(last_assigned_key(tenant_id), str(agent.user_id), ttl=LAST_ASSIGNED_TTL)
                user = await self.users.get(agent.user_id)
                name = user.effective_name if user else "Agent"
                logger.info(
                    "Conversation auto-assigned",
                    extra={
                        "conversation_reference": reference,
                        "agent_id": str(agent.user_id),
                        "strategy": config.strategy.value,
                    },
                )
                return Result.success(AutoAssignmentResult.assigned(str(agent.user_id), name))

            return Result.success(AutoAssignmentResult.failed(last_error))
        except Exception as e:
            logger.exception("Auto-assignment failed", extra={"conversation_reference": reference})
            return Result.failure(msg.AUTO_ASSIGNMENT_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)
