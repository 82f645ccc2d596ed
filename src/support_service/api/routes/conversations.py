# src/support_service/api/routes/conversations.py
"""
Conversation endpoints.

Static paths (``mine/active``, ``escalated``, ``dashboard``, ``performance``...) are declared
before ``/{reference}`` so they are not captured as references.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from support_service.api.dependencies import (
    AutoAssignmentDep,
    ConversationQueriesDep,
    ConversationServiceDep,
)
from support_service.api.middleware.rate_limit import limiter, write_limit
from support_service.api.schemas.agents import AutoAssignmentSettingsDto, UpdateAutoAssignmentSettingsRequest
from support_service.api.schemas.base import IdResponse, StatusResponse
from support_service.api.schemas.conversations import (
    AddMessageRequest,
    AssignAgentRequest,
    CompleteConversationRequest,
    ConversationDetailsDto,
    ConversationDto,
    ConversationInsightDto,
    ConversationMessageDto,
    ConversationPerformanceStatsDto,
    CreateInsightRequest,
    DashboardMetricsDto,
    EscalateRequest,
    EscalationPopupDto,
    PendingEscalationDto,
    ReassignAgentRequest,
    SendAgentMessageRequest,
    TransferConversationBody,
    TransferConversationRequest,
)
from support_service.api.schemas.pagination import PaginatedResponse
from support_service.auth.rbac.decorators import require_permission
from support_service.auth.rbac.permissions import Permission
from support_service.auth.schemas import UserInfo
from support_service.domain import error_messages as msg
from support_service.domain.enums import ConversationStatus
from support_service.domain.exceptions import NotFound
from support_service.domain.result import raise_for_result

router = APIRouter()

can_read = require_permission(Permission.CONVERSATIONS_READ)
can_write = require_permission(Permission.CONVERSATIONS_WRITE)
can_assign = require_permission(Permission.CONVERSATIONS_ASSIGN)
can_supervise = require_permission(Permission.CONVERSATIONS_SUPERVISE)


# ============================================================================
# Lists and dashboards
# ============================================================================


@router.get("", response_model=PaginatedResponse[ConversationDto])
async def list_conversations(
    queries: ConversationQueriesDep,
    user: UserInfo = Depends(can_read),
    status_filter: Optional[str] = Query(None, alias="status", description="Unknown values are ignored"),
    user_id: Optional[str] = Query(None, description="Customer (channel user) id"),
    search: Optional[str] = Query(None, max_length=200),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: Optional[str] = Query("LastActivityAt"),
    sort_desc: bool = True,
):
    return raise_for_result(
        await queries.get_all(
            status=status_filter,
            user_id=user_id,
            search=search,
            start_date=start_date,
            end_date=end_date,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_desc=sort_desc,
        )
    )


@router.get("/mine/active", response_model=PaginatedResponse[ConversationDto])
async def my_active_conversations(
    queries: ConversationQueriesDep,
    user: UserInfo = Depends(can_read),
    search: Optional[str] = Query(None, max_length=200),
    status_filter: Optional[ConversationStatus] = Query(None, alias="status"),
    priority: Optional[int] = Query(None, ge=1, le=3),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: Optional[str] = Query("LastActivityAt"),
    sort_desc: bool = True,
):
    """Active conversations the caller holds."""
    return raise_for_result(
        await queries.my_active(
            user.id,
            search=search,
            status=status_filter,
            priority=priority,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_desc=sort_desc,
        )
    )


@router.get("/mine/past", response_model=PaginatedResponse[ConversationDto])
async def my_past_conversations(
    queries: ConversationQueriesDep,
    user: UserInfo = Depends(can_read),
    search: Optional[str] = Query(None, max_length=200),
    status_filter: Optional[ConversationStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: Optional[str] = Query("CompletedAt"),
    sort_desc: bool = True,
):
    """Completed, abandoned and archived conversations the caller handled."""
    return raise_for_result(
        await queries.my_past(
            user.id,
            search=search,
            status=status_filter,
            start_date=start_date,
            end_date=end_date,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_desc=sort_desc,
        )
    )


@router.get("/escalated", response_model=list[ConversationDto], dependencies=[Depends(can_read)])
async def escalated_conversations(queries: ConversationQueriesDep):
    return await queries.escalated()


@router.get("/pending", response_model=list[PendingEscalationDto], dependencies=[Depends(can_read)])
async def pending_escalations(queries: ConversationQueriesDep):
    """Escalations nobody has accepted yet, highest priority first."""
    return await queries.pending_escalations()


@router.get("/dashboard", response_model=DashboardMetricsDto, dependencies=[Depends(can_read)])
async def dashboard_metrics(queries: ConversationQueriesDep):
    return await queries.dashboard_metrics()


@router.get("/performance", response_model=ConversationPerformanceStatsDto, dependencies=[Depends(can_read)])
async def performance_stats(queries: ConversationQueriesDep, days: int = Query(30, ge=1, le=365)):
    """Volume, sentiment, resolution time percentiles and per agent breakdowns for the last ``days`` days."""
    return await queries.performance_stats(days)



# ============================================================================
# Auto-assignment settings (per tenant of the caller)
# ============================================================================


@router.get("/auto-assignment/settings", response_model=AutoAssignmentSettingsDto)
async def get_auto_assignment_settings(service: AutoAssignmentDep, user: UserInfo = Depends(can_read)):
    return await service.get_settings(user.tenant_id)


@router.put("/auto-assignment/settings", response_model=AutoAssignmentSettingsDto)
async def update_auto_assignment_settings(
    body: UpdateAutoAssignmentSettingsRequest,
    service: AutoAssignmentDep,
    user: UserInfo = Depends(can_supervise),
):
    return raise_for_result(await service.update_settings(user.tenant_id, body, modified_by=str(user.id)))


# ============================================================================
# Bot-facing commands
# ============================================================================


@router.post(
    "/messages",
    response_model=IdResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_write)],
)
@limiter.limit(write_limit)
async def add_message(request: Request, body: AddMessageRequest, service: ConversationServiceDep):
    """Store a message reported by the bot. The conversation is created on first contact."""
    return IdResponse(id=raise_for_result(await service.add_message(body)))


@router.post("/escalate", response_model=IdResponse, dependencies=[Depends(can_write)])
@limiter.limit(write_limit)
async def escalate(request: Request, body: EscalateRequest, service: ConversationServiceDep):
    """Hand a bot conversation to human agents and try to auto-assign it."""
    return IdResponse(id=raise_for_result(await service.escalate(body)))


# ============================================================================
# Single conversation
# ============================================================================


@router.get("/{reference}", response_model=ConversationDetailsDto, dependencies=[Depends(can_read)])
async def get_conversation(reference: str, queries: ConversationQueriesDep):
    return raise_for_result(await queries.get_by_id(reference))


@router.get("/{reference}/messages", response_model=list[ConversationMessageDto], dependencies=[Depends(can_read)])
async def conversation_messages(
    reference: str,
    queries: ConversationQueriesDep,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    since: Optional[datetime] = None,
):
    return await queries.messages(reference, limit=limit, since=since)


@router.get(
    "/{conversation_id}/messages/incremental",
    response_model=list[ConversationMessageDto],
    dependencies=[Depends(can_read)],
)
async def incremental_messages(
    conversation_id: str,
    queries: ConversationQueriesDep,
    last_timestamp: Optional[datetime] = None,
):
    """Messages newer than ``last_timestamp``, for console polling."""
    return raise_for_result(await queries.incremental_messages(conversation_id, last_timestamp))


@router.get("/{reference}/context", response_model=EscalationPopupDto, dependencies=[Depends(can_read)])
async def conversation_context(reference: str, queries: ConversationQueriesDep):
    return raise_for_result(await queries.conversation_context(reference))


@router.get("/{conversation_id}/insight", response_model=ConversationInsightDto, dependencies=[Depends(can_read)])
async def conversation_insight(conversation_id: UUID, queries: ConversationQueriesDep):
    insight = await queries.insight(conversation_id)
    if insight is None:
        raise NotFound(msg.INSIGHT_NOT_FOUND_TEMPLATE.format(conversation_id=conversation_id))
    return insight


@router.post("/{reference}/accept", response_model=IdResponse)
@limiter.limit(write_limit)
async def accept_escalation(
    request: Request,
    reference: str,
    service: ConversationServiceDep,
    user: UserInfo = Depends(can_write),
):
    return IdResponse(id=raise_for_result(await service.accept_escalation(reference, user)))


@router.post("/{reference}/assign", response_model=IdResponse, dependencies=[Depends(can_assign)])
@limiter.limit(write_limit)
async def assign_agent(request: Request, reference: str, body: AssignAgentRequest, service: ConversationServiceDep):
    return IdResponse(id=raise_for_result(await service.assign_agent(reference, body.agent_id)))


@router.post("/{reference}/complete", response_model=IdResponse)
@limiter.limit(write_limit)
async def complete_conversation(
    request: Request,
    reference: str,
    body: CompleteConversationRequest,
    service: ConversationServiceDep,
    user: UserInfo = Depends(can_write),
):
    return IdResponse(id=raise_for_result(await service.complete(reference, body, user)))


@router.post("/{conversation_id}/transfer", response_model=IdResponse)
@limiter.limit(write_limit)
async def transfer_conversation(
    request: Request,
    conversation_id: str,
    body: TransferConversationBody,
    service: ConversationServiceDep,
    user: UserInfo = Depends(can_assign),
):
    command = TransferConversationRequest(conversation_id=conversation_id, **body.model_dump())
    return IdResponse(id=raise_for_result(await service.transfer(command, user)))


@router.post("/{conversation_id}/reassign", response_model=IdResponse, dependencies=[Depends(can_supervise)])
@limiter.limit(write_limit)
async def reassign_conversation(
    request: Request,
    conversation_id: str,
    body: ReassignAgentRequest,
    service: ConversationServiceDep,
):
    return IdResponse(id=raise_for_result(await service.reassign(conversation_id, body)))


@router.post("/{reference}/agent-messages", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_limit)
async def send_agent_message(
    request: Request,
    reference: str,
    body: SendAgentMessageRequest,
    service: ConversationServiceDep,
    user: UserInfo = Depends(can_write),
):
    """Store an agent reply and relay it to the customer through the bot."""
    return IdResponse(id=raise_for_result(await service.send_agent_message(reference, body, user)))


@router.post("/{conversation_id}/viewers", response_model=StatusResponse)
async def join_viewers(conversation_id: str, service: ConversationServiceDep, user: UserInfo = Depends(can_read)):
    """Subscribe the caller's open realtime connections to the conversation's events."""
    joined = raise_for_result(await service.join_viewers(conversation_id, user))
    return StatusResponse(message="Joined conversation", data={"connections": joined})


@router.post(
    "/{conversation_id}/insight",
    response_model=IdResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_write)],
)
async def create_insight(conversation_id: UUID, body: CreateInsightRequest, service: ConversationServiceDep):
    return IdResponse(id=raise_for_result(await service.create_insight(conversation_id, body)))
