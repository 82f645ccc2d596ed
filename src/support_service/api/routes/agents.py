# src/support_service/api/routes/agents.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from support_service.api.dependencies import AgentServiceDep, ConversationQueriesDep, CurrentUser
from support_service.api.middleware.rate_limit import limiter, write_limit
from support_service.api.schemas.agents import (
    AgentDto,
    ConvertUserToAgentRequest,
    NotificationPreferencesDto,
    UpdateAgentStatusRequest,
    UpdatePreferencesRequest,
)
from support_service.auth.rbac.decorators import require_any_permission, require_permission
from support_service.auth.rbac.permissions import Permission
from support_service.auth.schemas import UserInfo
from support_service.domain.result import raise_for_result

router = APIRouter()


# ============================================================================
# Directory
# ============================================================================


@router.get(
    "",
    response_model=list[AgentDto],
    dependencies=[Depends(require_permission(Permission.AGENTS_READ))],
)
async def list_agents(service: AgentServiceDep):
    """All agents, ordered by user name."""
    return await service.list_agents()


@router.get("/me", response_model=Optional[AgentDto])
async def get_current_agent(user: CurrentUser, service: AgentServiceDep):
    """Agent profile of the caller, or null when the caller is not an agent."""
    return raise_for_result(await service.get_current_agent(user))


@router.get(
    "/available",
    response_model=list[AgentDto],
    dependencies=[Depends(require_permission(Permission.AGENTS_READ))],
)
async def available_agents(queries: ConversationQueriesDep):
    """
    Agents that are online (not Offline).

    Available agents come first, then by lowest load and highest priority.
    """
    return await queries.available_agents()


@router.get(
    "/transfer-eligible",
    response_model=list[AgentDto],
    dependencies=[Depends(require_permission(Permission.AGENTS_READ))],
)
async def transfer_eligible_agents(
    queries: ConversationQueriesDep,
    conversation_id: str = Query(..., description="Conversation id or reference"),
    current_agent_id: Optional[UUID] = Query(None, description="Agent to exclude; defaults to the current holder"),
):
    return raise_for_result(await queries.transfer_eligible_agents(conversation_id, current_agent_id))


@router.get(
    "/{agent_id}",
    response_model=AgentDto,
    dependencies=[Depends(require_permission(Permission.AGENTS_READ))],
)
async def get_agent(agent_id: UUID, service: AgentServiceDep):
    return raise_for_result(await service.get_agent(agent_id))



# ============================================================================
# Agent profiles
# ============================================================================


@router.post(
    "/convert",
    response_model=AgentDto,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Permission.AGENTS_MANAGE))],
)
@limiter.limit(write_limit)
async def convert_user_to_agent(request: Request, body: ConvertUserToAgentRequest, service: AgentServiceDep):
    """Give an existing user an agent profile. The new agent starts Offline."""
    return raise_for_result(await service.convert_user_to_agent(body))


@router.patch("/{agent_id}/status", response_model=AgentDto)
@limiter.limit(write_limit)
async def update_agent_status(
    request: Request,
    agent_id: UUID,
    body: UpdateAgentStatusRequest,
    service: AgentServiceDep,
    user: UserInfo = Depends(require_any_permission(Permission.AGENTS_MANAGE, Permission.CONVERSATIONS_WRITE)),
):
    return raise_for_result(await service.update_agent_status(agent_id, body))


# ============================================================================
# Notification preferences of the caller
# ============================================================================


@router.get("/me/preferences", response_model=NotificationPreferencesDto)
async def get_my_preferences(user: CurrentUser, service: AgentServiceDep):
    return raise_for_result(await service.get_preferences(user))


@router.put("/me/preferences", response_model=NotificationPreferencesDto)
async def update_my_preferences(
    body: UpdatePreferencesRequest,
    service: AgentServiceDep,
    user: UserInfo = Depends(require_permission(Permission.PREFERENCES_WRITE)),
):
    return raise_for_result(await service.update_preferences(user, body))
