"""
Read side of conversations: agent directories, work queues, transcripts and
the dashboard.

Hot lists (available agents, escalations, dashboard) are cached in the
tagged cache as JSON-ready dicts and invalidated by the commands that change
them.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.agents import AgentDto
from support_service.api.schemas.analytics import AgentPerformance, GroupPerformance
from support_service.api.schemas.conversations import (
    ConversationDetailsDto,
    ConversationDto,
    ConversationInsightDto,
    ConversationMessageDto,
    ConversationPerformanceStatsDto,
    DashboardMetricsDto,
    EscalationPopupDto,
    HandoffDto,
    ParticipantDto,
    PendingEscalationDto,
)
from support_service.api.schemas.errors import ErrorCode
from support_service.api.schemas.pagination import PaginatedResponse, PaginationMeta
from support_service.domain import error_messages as msg
from support_service.domain.enums import ConversationMode, ConversationStatus, parse_enum
from support_service.domain.result import Result
from support_service.infrastructure.cache import CacheKeys, CacheTags, TaggedCache
from support_service.infrastructure.database.base_model import as_naive_utc, utcnow
from support_service.infrastructure.database.models import (
    Conversation,
    ConversationInsight,
    ConversationMessage,
)
from support_service.infrastructure.database.repositories import (
    AgentRepository,
    ConversationMessageRepository,
    ConversationRepository,
    HandoffRepository,
    InsightRepository,
    ParticipantRepository,
    UserRepository,
    parse_uuid,
)
from support_service.services.analytics import (
    daily_series,
    hourly_series,
    hours_between,
    mean,
    percentile,
    stats_window,
)
from support_service.services.escalation_popup import UNKNOWN_CUSTOMER

logger = logging.getLogger(__name__)

UNKNOWN_AGENT = "Unknown Agent"
PENDING_ESCALATIONS_LIMIT = 50
DASHBOARD_PERIOD_DAYS = 30

AVAILABLE_AGENTS_TTL = 120
TRANSFER_ELIGIBLE_TTL = 60
ESCALATED_TTL = 60
DASHBOARD_TTL = 300
PERFORMANCE_TTL = 600

_ACTIVE_SORT = {
    "created": Conversation.created_at,
    "status": Conversation.status,
    "username": Conversation.user_name,
    "messagecount": Conversation.message_count,
    "priority": Conversation.priority,
    "escalatedat": Conversation.escalated_at,
}

_PAST_SORT = {
    "created": Conversation.created_at,
    "status": Conversation.status,
    "username": Conversation.user_name,
    "messagecount": Conversation.message_count,
    "duration": Conversation.completed_at - Conversation.created_at,
    "resolutioncategory": Conversation.resolution_category,
    "completedat": Conversation.completed_at,
}

_ALL_SORT = {
    "created": Conversation.created_at,
    "status": Conversation.status,
    "username": Conversation.user_name,
    "messagecount": Conversation.message_count,
}

_SEARCH_COLUMNS = (
    Conversation.user_name,
    Conversation.conversation_summary,
    Conversation.escalation_reason,
    Conversation.whatsapp_phone_number,
)


def _order(query, columns: dict[str, Any], sort_by: Optional[str], default, descending: bool):
    column = columns.get((sort_by or "").lower(), default)
    return query.order_by(column.desc() if descending else column.asc())


def _search(term: str, *columns):
    pattern = f"%{term}%"
    return or_(*(column.ilike(pattern) for column in columns))


class ConversationQueryService:
    def __init__(self, session: AsyncSession, cache: TaggedCache):
        self.session = session
        self.cache = cache
        self.conversations = ConversationRepository(session)
        self.messages_repo = ConversationMessageRepository(session)
        self.handoffs = HandoffRepository(session)
        self.participants = ParticipantRepository(session)
        self.insights = InsightRepository(session)
        self.agents = AgentRepository(session)
        self.users = UserRepository(session)

    # ========================================
    # Agents
    # ========================================

    async def available_agents(self) -> list[AgentDto]:
        """
        Agents that are not Offline: available ones first, then by lowest
        load and highest priority.
        """

        async def load() -> list[dict]:
            rows = await self.agents.list_online_with_users()
            dtos = [AgentDto.from_agent(agent, user) for agent, user in rows]
            dtos.sort(key=lambda a: (not a.is_available, a.active_conversation_count, -a.priority))
            return [dto.model_dump(mode="json") for dto in dtos]

        data = await self.cache.get_or_set(
            CacheKeys.AVAILABLE_AGENTS,
            load,
            tags=[CacheTags.AGENTS],
            ttl=AVAILABLE_AGENTS_TTL,
        )
        return [AgentDto.model_validate(item) for item in data]

    async def transfer_eligible_agents(
        self,
        conversation_id: str,
        current_agent_id: Optional[UUID] = None,
    ) -> Result[list[AgentDto]]:
        """Agents a conversation can be handed to, excluding the agent holding it."""
        conversation = await self.conversations.find_by_id_or_reference(conversation_id)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND, code=ErrorCode.CONVERSATION_NOT_FOUND)
        if conversation.status != ConversationStatus.ACTIVE:
            return Result.failure(msg.CONVERSATION_NOT_TRANSFERABLE, code=ErrorCode.CONFLICT)

        exclude = current_agent_id or conversation.current_agent_id

        async def load() -> list[dict]:
            rows = await self.agents.list_online_with_users(exclude_user_id=exclude)
            dtos = [AgentDto.from_agent(agent, user) for agent, user in rows]
            dtos.sort(key=lambda a: (not a.can_take_conversations, a.workload_percentage, -a.priority))
            return [dto.model_dump(mode="json") for dto in dtos]

        data = await self.cache.get_or_set(
            CacheKeys.transfer_eligible(str(conversation.id), str(exclude) if exclude else None),
            load,
            tags=[CacheTags.AGENTS, CacheTags.CONVERSATIONS, CacheTags.TRANSFER],
            ttl=TRANSFER_ELIGIBLE_TTL,
        )
        return Result.success([AgentDto.model_validate(item) for item in data])

    # ========================================
    # Conversation lists
    # ========================================

    async def _to_dtos(self, conversations: Sequence[Conversation], resolved_names: bool = False) -> list[ConversationDto]:
        """Map rows to DTOs and fill agent names in one users lookup."""
        ids = [c.current_agent_id for c in conversations]
        if resolved_names:
            ids += [c.resolved_by_agent_id for c in conversations]
        names = await self.users.names_for(ids)

        dtos = []
        for conversation in conversations:
            dto = ConversationDto.model_validate(conversation)
            if conversation.current_agent_id:
                dto.current_agent_name = names.get(conversation.current_agent_id, UNKNOWN_AGENT)
            if resolved_names and conversation.resolved_by_agent_id:
                dto.resolved_by_agent_name = names.get(conversation.resolved_by_agent_id, UNKNOWN_AGENT)
            dtos.append(dto)
        return dtos

    async def _page(self, query, page: int, page_size: int, resolved_names: bool = False) -> PaginatedResponse[ConversationDto]:
        result = await self.conversations.paginate(query, page=page, page_size=page_size)
        items = await self._to_dtos(result.items, resolved_names=resolved_names)
        return PaginatedResponse[ConversationDto](items=items, pagination=PaginationMeta.from_result(result))

    async def my_active(
        self,
        agent_id: UUID,
        search: Optional[str] = None,
        status: Optional[ConversationStatus] = None,
        priority: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
        sort_by: Optional[str] = "LastActivityAt",
        sort_desc: bool = True,
    ) -> Result[PaginatedResponse[ConversationDto]]:
        try:
            query = select(Conversation).where(
                Conversation.status == ConversationStatus.ACTIVE,
                or_(Conversation.current_agent_id == agent_id, Conversation.resolved_by_agent_id == agent_id),
            )
            if status is not None:
                query = query.where(Conversation.status == status)
            if priority is not None:
                query = query.where(Conversation.priority == priority)
            if search:
                query = query.where(_search(search, *_SEARCH_COLUMNS, Conversation.reference))
            query = _order(query, _ACTIVE_SORT, sort_by, Conversation.last_activity_at, sort_desc)

            response = await self._page(query, page, page_size)
        except SQLAlchemyError as e:
            logger.exception("Error retrieving active conversations", extra={"agent_id": str(agent_id)})
            return Result.failure(msg.ACTIVE_CONVERSATIONS_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        logger.info(
            "Retrieved active conversations",
            extra={"agent_id": str(agent_id), "count": len(response.items), "total": response.pagination.total},
        )
        return Result.success(response)

    async def my_past(
        self,
        agent_id: UUID,
        search: Optional[str] = None,
        status: Optional[ConversationStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
        sort_by: Optional[str] = "CompletedAt",
        sort_desc: bool = True,
    ) -> Result[PaginatedResponse[ConversationDto]]:
        try:
            involved = or_(Conversation.current_agent_id == agent_id, Conversation.resolved_by_agent_id == agent_id)
            if status is not None:
                query = select(Conversation).where(Conversation.status == status, involved)
            else:
                query = select(Conversation).where(
                    Conversation.status.in_(
                        [ConversationStatus.COMPLETED, ConversationStatus.ABANDONED, ConversationStatus.ARCHIVED]
                    ),
                    involved,
                )
            query = self.conversations.apply_filters(
                query, {"completed_at__gte": as_naive_utc(start_date), "completed_at__lte": as_naive_utc(end_date)}
            )
            if search:
                query = query.where(
                    _search(search, *_SEARCH_COLUMNS, Conversation.reference, Conversation.resolution_notes)
                )
            query = _order(query, _PAST_SORT, sort_by, Conversation.completed_at, sort_desc)

            response = await self._page(query, page, page_size, resolved_names=True)
        except SQLAlchemyError as e:
            logger.exception("Error retrieving past conversations", extra={"agent_id": str(agent_id)})
            return Result.failure(msg.PAST_CONVERSATIONS_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        return Result.success(response)

    async def get_all(
        self,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
        sort_by: Optional[str] = "LastActivityAt",
        sort_desc: bool = True,
    ) -> Result[PaginatedResponse[ConversationDto]]:
        """All conversations. An unrecognised ``status`` is ignored rather than rejected."""
        try:
            query = select(Conversation)
            query = self.conversations.apply_filters(
                query,
                {
                    "status": parse_enum(ConversationStatus, status),
                    "user_id": user_id or None,
                    "created_at__gte": as_naive_utc(start_date),
                    "created_at__lte": as_naive_utc(end_date),
                },
            )
            if search:
                query = query.where(_search(search, *_SEARCH_COLUMNS))
            query = _order(query, _ALL_SORT, sort_by, Conversation.last_activity_at, sort_desc)

            response = await self._page(query, page, page_size)
        except SQLAlchemyError as e:
            logger.exception("Error retrieving conversations")
            return Result.failure(msg.CONVERSATIONS_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        return Result.success(response)

    async def escalated(self) -> list[ConversationDto]:
        """Active conversations with a human or waiting for one, oldest escalation first."""

        async def load() -> list[dict]:
            query = (
                select(Conversation)
                .where(
                    Conversation.status == ConversationStatus.ACTIVE,
                    Conversation.mode.in_([ConversationMode.ESCALATING, ConversationMode.HUMAN]),
                )
                .order_by(Conversation.escalated_at)
            )
            rows = await self.conversations.all(query)
            return [dto.model_dump(mode="json") for dto in await self._to_dtos(rows)]

        data = await self.cache.get_or_set(
            CacheKeys.ESCALATED_CONVERSATIONS,
            load,
            tags=[CacheTags.CONVERSATIONS],
            ttl=ESCALATED_TTL,
        )
        return [ConversationDto.model_validate(item) for item in data]

    async def pending_escalations(self) -> list[PendingEscalationDto]:
        query = (
            select(Conversation)
            .where(
                Conversation.mode == ConversationMode.ESCALATING,
                Conversation.current_agent_id.is_(None),
                Conversation.status == ConversationStatus.ACTIVE,
            )
            .order_by(Conversation.priority.desc(), Conversation.escalated_at.desc())
            .limit(PENDING_ESCALATIONS_LIMIT)
        )
        rows = await self.conversations.all(query)
        return [
            PendingEscalationDto(
                conversation_id=c.id,
                conversation_reference=c.reference,
                customer_name=c.user_name or UNKNOWN_CUSTOMER,
                phone_number=c.whatsapp_phone_number or "No phone",
                escalation_reason=c.escalation_reason or "Escalation requested",
                priority=c.priority,
                escalated_at=c.escalated_at or c.created_at,
                last_activity_at=c.last_activity_at,
            )
            for c in rows
        ]

    # ========================================
    # Single conversation
    # ========================================

    async def messages(
        self,
        reference: str,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[ConversationMessageDto]:
        query = select(ConversationMessage).where(ConversationMessage.bot_framework_conversation_id == reference)
        if since is not None:
            query = query.where(ConversationMessage.timestamp >= as_naive_utc(since))
        query = query.order_by(ConversationMessage.timestamp)
        if limit is not None:
            query = query.limit(limit)
        rows = await self.messages_repo.all(query)
        return [ConversationMessageDto.model_validate(m) for m in rows]

    async def incremental_messages(
        self,
        conversation_id: str,
        last_timestamp: Optional[datetime] = None,
    ) -> Result[list[ConversationMessageDto]]:
        """Messages newer than ``last_timestamp``, for console polling."""
        parsed_id = parse_uuid(conversation_id)
        if parsed_id is None:
            return Result.failure(msg.INVALID_CONVERSATION_ID, code=ErrorCode.VALIDATION_ERROR)

        try:
            rows = await self.messages_repo.list_for_conversation(parsed_id, after=as_naive_utc(last_timestamp))
        except SQLAlchemyError as e:
            logger.exception("Error retrieving incremental messages", extra={"conversation_id": conversation_id})
            return Result.failure(msg.INCREMENTAL_MESSAGES_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)
        return Result.success([ConversationMessageDto.model_validate(m) for m in rows])

    async def get_by_id(self, reference: str) -> Result[ConversationDetailsDto]:
        conversation = await self.conversations.get_by_reference(reference)
        if conversation is None:
            logger.warning("Conversation not found", extra={"conversation_reference": reference})
            return Result.failure(
                msg.CONVERSATION_ID_NOT_FOUND_TEMPLATE.format(conversation_id=reference),
                code=ErrorCode.CONVERSATION_NOT_FOUND,
            )

        [dto] = await self._to_dtos([conversation])
        messages = await self.messages_repo.list_for_conversation(conversation.id)
        handoffs = await self.handoffs.list_for_conversation(conversation.id)
        participants = await self.participants.all(
            select(self.participants.model).where(self.participants.model.conversation_id == conversation.id)
        )

        return Result.success(
            ConversationDetailsDto(
                conversation=dto,
                messages=[ConversationMessageDto.model_validate(m) for m in messages],
                participants=[ParticipantDto.model_validate(p) for p in participants],
                handoffs=[HandoffDto.model_validate(h) for h in reversed(handoffs)],
            )
        )

    async def conversation_context(self, reference: str) -> Result[EscalationPopupDto]:
        """Escalation popup rebuilt from the stored conversation."""
        conversation = await self.conversations.get_by_reference(reference)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND_STRICT, code=ErrorCode.CONVERSATION_NOT_FOUND)

        customer = await self.participants.customer_for(conversation.id)
        last_message = await self.messages_repo.latest(conversation.id)
        message_count = await self.session.scalar(
            select(func.count()).select_from(ConversationMessage).where(
                ConversationMessage.conversation_id == conversation.id
            )
        )
        started = conversation.created_at or conversation.start_time
        duration = (conversation.escalated_at or utcnow()) - started

        return Result.success(
            EscalationPopupDto.build(
                conversation_reference=conversation.reference,
                customer_name=(customer.participant_name if customer else None) or UNKNOWN_CUSTOMER,
                phone_number=(customer.whatsapp_phone_number if customer else None) or "Unknown",
                escalation_reason=conversation.escalation_reason or "No reason provided",
                priority=conversation.priority,
                escalated_at=conversation.escalated_at or utcnow(),
                duration=duration,
                last_message=last_message.content if last_message else None,
                message_count=message_count or 0,
                conversation_summary=conversation.conversation_summary,
            )
        )

    async def insight(self, conversation_id: UUID) -> Optional[ConversationInsightDto]:
        row = await self.insights.first(
            select(ConversationInsight).where(ConversationInsight.conversation_id == conversation_id)
        )
        return ConversationInsightDto.model_validate(row) if row else None

    # ========================================
    # Dashboard
    # ========================================

    async def dashboard_metrics(self) -> DashboardMetricsDto:
        data = await self.cache.get_or_set(
            CacheKeys.DASHBOARD_METRICS,
            self._compute_dashboard,
            tags=[CacheTags.DASHBOARD],
            ttl=DASHBOARD_TTL,
        )
        return DashboardMetricsDto.model_validate(data)

    async def _compute_dashboard(self) -> dict:
        now = utcnow()
        last_24_hours = now - timedelta(hours=24)
        period_start = now - timedelta(days=DASHBOARD_PERIOD_DAYS)
        previous_start = period_start - timedelta(days=DASHBOARD_PERIOD_DAYS)

        rows = (
            await self.session.execute(
                select(Conversation, ConversationInsight)
                .outerjoin(ConversationInsight, ConversationInsight.conversation_id == Conversation.id)
                .where(Conversation.created_at >= period_start)
            )
        ).all()
        conversations = [conversation for conversation, _ in rows]
        insights = [insight for _, insight in rows if insight is not None]

        active = [c for c in conversations if c.status == ConversationStatus.ACTIVE]
        completed = [c for c in conversations if c.status == ConversationStatus.COMPLETED]
        escalated = [c for c in conversations if c.is_escalated]
        total = len(conversations)

        resolution_hours = [
            (c.completed_at - c.created_at).total_seconds() / 3600 for c in completed if c.completed_at
        ]
        # Response time approximation: conversation duration spread over its replies
        response_minutes = [
            c.duration.total_seconds() / 60 / max(c.message_count - 1, 1)
            for c in conversations
            if c.message_count > 1
        ]
        satisfied = [i for i in insights if i.resolution_success is True or i.sentiment_score > 0.3]

        previous_total = await self.session.scalar(
            select(func.count())
            .select_from(Conversation)
            .where(Conversation.created_at >= previous_start, Conversation.created_at < period_start)
        ) or 0
        trend = (total - previous_total) / previous_total * 100 if previous_total > 0 else 0.0

        metrics = DashboardMetricsDto(
            total_conversations=total,
            average_resolution_time_hours=mean(resolution_hours),
            average_sentiment_score=mean([i.sentiment_score for i in insights]),
            escalation_rate=len(escalated) / total * 100 if total else 0.0,
            agent_response_time_minutes=mean(response_minutes),
            customer_satisfaction_score=len(satisfied) / len(insights) * 100 if insights else 0.0,
            new_conversations_last_24_hours=sum(1 for c in conversations if c.created_at >= last_24_hours),
            completed_last_24_hours=sum(
                1 for c in completed if c.completed_at and c.completed_at >= last_24_hours
            ),
            active_conversations=len(active),
            escalated_conversations=len(escalated),
            trend_percentage=trend,
            trend_direction="up" if trend > 0 else "down" if trend < 0 else "stable",
            status_distribution=dict(Counter(c.status.value for c in conversations)),
            mode_distribution=dict(Counter(c.mode.value for c in conversations)),
            priority_distribution=dict(Counter(c.priority for c in conversations)),
            sentiment_distribution=dict(Counter(i.sentiment_label for i in insights)),
            resolution_distribution=dict(
                Counter(c.resolution_category.value for c in completed if c.resolution_category)
            ),
            last_updated=now,
            data_period_days=DASHBOARD_PERIOD_DAYS,
        )
        return metrics.model_dump(mode="json")

    async def performance_stats(self, days: int = 30) -> ConversationPerformanceStatsDto:
        """
        Daily volume and sentiment, hourly distribution, resolution time
        percentiles and per agent, mode and resolution category breakdowns for
        the last ``days`` days (today included).
        """
        data = await self.cache.get_or_set(
            CacheKeys.conversation_performance(days),
            lambda: self._compute_performance(days),
            tags=[CacheTags.CONVERSATIONS, CacheTags.DASHBOARD],
            ttl=PERFORMANCE_TTL,
        )
        return ConversationPerformanceStatsDto.model_validate(data)

    async def _compute_performance(self, days: int) -> dict:
        now = utcnow()
        start, end = stats_window(now, days)
        rows = (
            await self.session.execute(
                select(Conversation, ConversationInsight)
                .outerjoin(ConversationInsight, ConversationInsight.conversation_id == Conversation.id)
                .where(Conversation.created_at >= start, Conversation.created_at < end)
            )
        ).all()
        completed = [(c, i) for c, i in rows if _completed_hours(c) is not None]
        hours = sorted(_completed_hours(c) for c, _ in completed)

        by_agent: dict[UUID, list] = {}
        for row in rows:
            if row[0].current_agent_id is not None:
                by_agent.setdefault(row[0].current_agent_id, []).append(row)
        names = await self.users.names_for(by_agent)

        agent_performance = []
        for agent_id, members in by_agent.items():
            figures = _group_figures(members)
            agent_performance.append(
                AgentPerformance(
                    agent_id=str(agent_id),
                    agent_name=names.get(agent_id, UNKNOWN_AGENT),
                    total_conversations=figures.total,
                    completed_conversations=figures.resolved,
                    escalated_conversations=figures.escalated,
                    average_resolution_hours=figures.average_resolution_hours,
                    average_sentiment_score=figures.average_sentiment_score,
                )
            )

        by_mode: dict[str, list] = {}
        for row in rows:
            by_mode.setdefault(row[0].mode.value, []).append(row)
        by_category: dict[str, list] = {}
        for row in completed:
            if row[0].resolution_category is not None:
                by_category.setdefault(row[0].resolution_category.value, []).append(row)

        stats = ConversationPerformanceStatsDto(
            daily_volume=daily_series(rows, start, end, created=lambda r: r[0].created_at),
            hourly_distribution=hourly_series(rows, created=lambda r: r[0].created_at),
            sentiment_trend=daily_series(
                [r for r in rows if r[1] is not None],
                start,
                end,
                created=lambda r: r[0].created_at,
                value=lambda day: mean([r[1].sentiment_score for r in day]),
            ),
            median_resolution_time_hours=percentile(hours, 50),
            p90_resolution_time_hours=percentile(hours, 90),
            p95_resolution_time_hours=percentile(hours, 95),
            total_completed_conversations=len(completed),
            agent_performance=agent_performance,
            mode_performance=[_group_figures(members, name) for name, members in by_mode.items()],
            resolution_category_performance=[
                _group_figures(members, name) for name, members in by_category.items()
            ],
            period_days=days,
            generated_at=now,
        )
        return stats.model_dump(mode="json")


def _completed_hours(conversation: Conversation) -> Optional[float]:
    if conversation.status != ConversationStatus.COMPLETED:
        return None
    return hours_between(conversation.created_at, conversation.completed_at)


def _group_figures(rows: Sequence, name: str = "") -> GroupPerformance:
    """Totals over ``(conversation, insight)`` rows; ``resolved`` counts completed conversations."""
    conversations = [c for c, _ in rows]
    resolution_hours = [h for h in map(_completed_hours, conversations) if h is not None]
    return GroupPerformance(
        name=name,
        total=len(conversations),
        resolved=sum(1 for c in conversations if c.status == ConversationStatus.COMPLETED),
        escalated=sum(1 for c in conversations if c.is_escalated),
        average_resolution_hours=mean(resolution_hours),
        average_sentiment_score=mean([i.sentiment_score for _, i in rows if i is not None]),
    )
