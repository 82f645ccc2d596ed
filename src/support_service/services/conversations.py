"""
Conversation commands.

Every command returns a ``Result``; business failures never escape as
exceptions. Commands flush through the repositories and leave the commit
to the caller (the request session dependency or a worker's
``db.session()`` block).

Agents are addressed by their user id throughout.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.agents import AutoAssignmentResult
from support_service.api.schemas.conversations import (
    AddMessageRequest,
    CompleteConversationRequest,
    ConversationMessageDto,
    CreateInsightRequest,
    EscalateRequest,
    EscalationPopupDto,
    ReassignAgentRequest,
    SendAgentMessageRequest,
    TransferConversationRequest,
)
from support_service.api.schemas.errors import ErrorCode
from support_service.auth.schemas import UserInfo
from support_service.config.settings import Settings, get_settings
from support_service.domain import error_messages as msg
from support_service.domain.enums import (
    AgentStatus,
    ConversationMode,
    ConversationStatus,
    HandoffStatus,
    HandoffType,
    ParticipantType,
)
from support_service.domain.exceptions import ExternalServiceError
from support_service.domain.result import Result
from support_service.infrastructure.cache import CacheTags, TaggedCache
from support_service.infrastructure.clients import BotRelayClient, WhatsAppApiClient
from support_service.infrastructure.database.base_model import as_naive_utc, utcnow
from support_service.infrastructure.database.models import (
    Agent,
    Conversation,
    ConversationHandoff,
    ConversationInsight,
    ConversationMessage,
    ConversationParticipant,
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
from support_service.infrastructure.realtime import HubNotifier, connection_manager
from support_service.interfaces import INotifier
from support_service.services.auto_assignment import AutoAssignmentService
from support_service.services.escalation_popup import (
    count_transcript_messages,
    customer_name_from_phone,
    determine_priority,
    extract_last_user_message,
    truncate_transcript,
)

logger = logging.getLogger(__name__)

DEFAULT_AGENT_NAME = "Agent"
ACCEPTED_ESCALATION_REASON = "Agent accepted escalation"
DEFAULT_TRANSFER_REASON = "Agent transfer"
DEFAULT_REASSIGN_REASON = "Conversation reassigned by supervisor"
WHATSAPP_CHANNEL = "whatsapp"


class ConversationService:
    """
    Commands on conversations: intake of bot messages, escalation, agent
    assignment, transfer, completion and agent replies.

    Example:
        >>> service = ConversationService(session, cache)
        >>> result = await service.escalate(EscalateRequest(reference="whatsapp:+447700900123", reason="urgent"))
        >>> result.data
        UUID('...')
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: TaggedCache,
        notifier: Optional[INotifier] = None,
        bot_relay: Optional[BotRelayClient] = None,
        whatsapp: Optional[WhatsAppApiClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.cache = cache
        self.hub = HubNotifier(notifier or connection_manager)
        self._bot_relay = bot_relay
        self._whatsapp = whatsapp
        self.settings = settings or get_settings()

        self.conversations = ConversationRepository(session)
        self.messages = ConversationMessageRepository(session)
        self.handoffs = HandoffRepository(session)
        self.participants = ParticipantRepository(session)
        self.insights = InsightRepository(session)
        self.agents = AgentRepository(session)
        self.users = UserRepository(session)

    @property
    def bot_relay(self) -> BotRelayClient:
        if self._bot_relay is None:
            self._bot_relay = BotRelayClient()
        return self._bot_relay

    @property
    def whatsapp(self) -> WhatsAppApiClient:
        if self._whatsapp is None:
            self._whatsapp = WhatsAppApiClient(self.settings)
        return self._whatsapp

    # ========================================
    # Helpers
    # ========================================

    def _new_conversation(self, reference: str, **fields) -> Conversation:
        now = utcnow()
        return Conversation(
            reference=reference,
            status=ConversationStatus.ACTIVE,
            start_time=now,
            last_activity_at=now,
            tenant_id=self.settings.default_tenant_id,
            **fields,
        )

    async def _agent_name(self, user_id: UUID, fallback: Optional[str] = None) -> str:
        user = await self.users.get(user_id)
        if user is not None:
            return user.effective_name or DEFAULT_AGENT_NAME
        return fallback or DEFAULT_AGENT_NAME

    async def _release_agent(self, user_id: Optional[UUID]) -> None:
        """Free one conversation slot of the agent owned by ``user_id``."""
        if user_id is None:
            return
        agent = await self.agents.get_by_user_id(user_id)
        if agent is not None and agent.active_conversation_count > 0:
            agent.decrement_load()
            await self.agents.save(agent)

    async def _complete_accepted_handoff(self, conversation_id: UUID, now: datetime) -> None:
        handoff = await self.handoffs.latest_with_status(conversation_id, HandoffStatus.ACCEPTED)
        if handoff is not None:
            handoff.status = HandoffStatus.COMPLETED
            handoff.completed_at = now
            await self.handoffs.save(handoff)

    @staticmethod
    def _availability_failure(agent: Agent, not_available: str, at_capacity: str) -> Optional[str]:
        if agent.status != AgentStatus.AVAILABLE:
            return not_available
        if agent.active_conversation_count >= agent.max_concurrent_conversations:
            return at_capacity
        return None

    # ========================================
    # Bot intake
    # ========================================

    async def add_message(self, request: AddMessageRequest) -> Result[UUID]:
        """Store a message reported by the bot, creating the conversation on first contact."""
        conversation = await self.conversations.get_by_reference(request.reference)
        if conversation is None:
            conversation = await self.conversations.create(
                self._new_conversation(
                    request.reference,
                    mode=ConversationMode.BOT,
                    user_id=request.user_id,
                    user_name=request.user_name,
                    channel_id=request.channel_id,
                )
            )
            logger.info("Conversation started", extra={"conversation_reference": request.reference})

        message = ConversationMessage(
            conversation_id=conversation.id,
            bot_framework_conversation_id=request.reference,
            role=request.role,
            content=request.content,
            tool_call_id=request.tool_call_id,
            tool_calls=request.tool_calls,
            image_type=request.image_type,
            image_data=request.image_data,
            attachments=request.attachments,
            timestamp=as_naive_utc(request.timestamp) or utcnow(),
            user_id=request.user_id,
            user_name=request.user_name,
            channel_id=request.channel_id,
            is_escalated=conversation.is_escalated,
            tenant_id=conversation.tenant_id,
        )
        await self.messages.create(message)

        conversation.message_count += 1
        conversation.touch()
        await self.conversations.save(conversation)

        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS)
        if conversation.is_escalated:
            await self.hub.new_conversation_message(
                conversation.id,
                conversation.reference,
                ConversationMessageDto.model_validate(message).model_dump(mode="json"),
            )
        return Result.success(message.id)

    async def escalate(self, request: EscalateRequest) -> Result[UUID]:
        """
        Hand a bot conversation over to human agents.

        Opens a BotToHuman handoff carrying the transcript, alerts every
        connected agent and, when the tenant has it enabled, tries automatic
        assignment.
        A failed auto-assignment never fails the escalation.
        """
        now = utcnow()
        priority = determine_priority(request.reason)

        conversation = await self.conversations.get_by_reference(request.reference)
        if conversation is None:
            conversation = await self.conversations.create(
                self._new_conversation(
                    request.reference,
                    mode=ConversationMode.ESCALATING,
                    escalated_at=now,
                    escalation_reason=request.reason,
                    priority=priority,
                    whatsapp_phone_number=request.whatsapp_phone_number,
                )
            )
        else:
            conversation.mode = ConversationMode.ESCALATING
            conversation.escalated_at = now
            conversation.escalation_reason = request.reason
            conversation.priority = priority
            if request.whatsapp_phone_number:
                conversation.whatsapp_phone_number = request.whatsapp_phone_number
            conversation.touch()
            await self.conversations.save(conversation)

        phone = request.whatsapp_phone_number or conversation.whatsapp_phone_number
        if phone and await self.participants.customer_for(conversation.id) is None:
            await self.participants.create(
                ConversationParticipant(
                    conversation_id=conversation.id,
                    type=ParticipantType.CUSTOMER,
                    participant_id=conversation.user_id,
                    participant_name=conversation.user_name or customer_name_from_phone(phone),
                    whatsapp_phone_number=phone,
                    tenant_id=conversation.tenant_id,
                )
            )

        await self.handoffs.create(
            ConversationHandoff(
                conversation_id=conversation.id,
                conversation_reference=conversation.reference,
                handoff_type=HandoffType.BOT_TO_HUMAN,
                from_participant_type=ParticipantType.BOT,
                to_participant_type=ParticipantType.AGENT,
                reason=request.reason,
                conversation_transcript=request.transcript,
                status=HandoffStatus.INITIATED,
                initiated_at=now,
                tenant_id=conversation.tenant_id,
            )
        )
        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS, CacheTags.DASHBOARD)

        popup = EscalationPopupDto.build(
            conversation_reference=conversation.reference,
            customer_name=customer_name_from_phone(phone),
            phone_number=phone or "Unknown",
            escalation_reason=request.reason,
            priority=priority,
            escalated_at=now,
            duration=conversation.duration,
            last_message=extract_last_user_message(request.transcript),
            message_count=count_transcript_messages(request.transcript),
            conversation_summary=truncate_transcript(
                request.transcript, self.settings.escalation_summary_max_length
            ),
        )
        await self.hub.conversation_escalated(conversation.reference, request.reason, priority)
        await self.hub.escalation_popup(popup.model_dump(mode="json"))

        logger.info(
            "Conversation escalated",
            extra={"conversation_reference": conversation.reference, "priority": priority},
        )

        await self._try_auto_assign(conversation)

        return Result.success(conversation.id)

    async def _try_auto_assign(self, conversation: Conversation) -> Optional[AutoAssignmentResult]:
        auto_assignment = AutoAssignmentService(
            self.session, self.cache, assign=self.assign_agent, settings=self.settings
        )
        config = await auto_assignment.get_settings(conversation.tenant_id)
        if not config.is_enabled:
            return None

        result = await auto_assignment.assign_conversation(conversation.reference, conversation.tenant_id)
        if result.failed:
            logger.warning(
                "Auto-assignment failed",
                extra={"conversation_reference": conversation.reference, "error": result.error_message},
            )
            return None
        if not result.data.was_assigned:
            logger.info(
                "Conversation left for manual assignment",
                extra={"conversation_reference": conversation.reference, "reason": result.data.reason},
            )
        return result.data

    # ========================================
    # Agent assignment
    # ========================================

    async def accept_escalation(self, reference: str, user: Optional[UserInfo]) -> Result[UUID]:
        """The calling agent takes an escalated conversation that nobody holds yet."""
        if user is None:
            return Result.failure(msg.USER_NOT_AUTHENTICATED_STRICT, code=ErrorCode.UNAUTHORIZED)

        conversation = await self.conversations.get_by_reference(reference)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND_STRICT, code=ErrorCode.CONVERSATION_NOT_FOUND)

        if conversation.mode != ConversationMode.ESCALATING or conversation.current_agent_id is not None:
            return Result.failure(msg.CONVERSATION_ALREADY_ACCEPTED, code=ErrorCode.CONFLICT)

        now = utcnow()
        conversation.current_agent_id = user.id
        conversation.mode = ConversationMode.HUMAN
        conversation.status = ConversationStatus.ACTIVE
        conversation.touch()
        await self.conversations.save(conversation)

        agent = await self.agents.get_by_user_id(user.id)
        if agent is not None:
            agent.increment_load()
            await self.agents.save(agent)

        await self.handoffs.create(
            ConversationHandoff(
                conversation_id=conversation.id,
                conversation_reference=conversation.reference,
                handoff_type=HandoffType.BOT_TO_HUMAN,
                from_participant_type=ParticipantType.BOT,
                to_participant_type=ParticipantType.AGENT,
                to_agent_id=user.id,
                reason=ACCEPTED_ESCALATION_REASON,
                status=HandoffStatus.COMPLETED,
                initiated_at=now,
                accepted_at=now,
                completed_at=now,
                tenant_id=conversation.tenant_id,
            )
        )
        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS, CacheTags.AGENTS)

        agent_name = await self._agent_name(user.id, fallback=user.name)
        await self.hub.escalation_accepted(conversation.reference, str(user.id), agent_name)

        logger.info(
            "Escalation accepted",
            extra={"conversation_reference": reference, "agent_id": str(user.id)},
        )
        return Result.success(conversation.id)

    async def assign_agent(self, reference: str, agent_user_id: UUID) -> Result[UUID]:
        conversation = await self.conversations.get_by_reference(reference)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND, code=ErrorCode.CONVERSATION_NOT_FOUND)

        found = await self.agents.get_with_user(agent_user_id)
        if found is None:
            return Result.failure(msg.AGENT_NOT_FOUND, code=ErrorCode.AGENT_NOT_FOUND)
        agent, agent_user = found

        if not agent.can_take_conversations:
            return Result.failure(msg.AGENT_NOT_AVAILABLE_TO_TAKE, code=ErrorCode.AGENT_UNAVAILABLE)

        now = utcnow()
        conversation.current_agent_id = agent_user_id
        conversation.mode = ConversationMode.HUMAN
        conversation.touch()
        await self.conversations.save(conversation)

        agent.increment_load()
        await self.agents.save(agent)

        handoff = await self.handoffs.latest_with_status(conversation.id, HandoffStatus.INITIATED)
        if handoff is not None:
            handoff.to_agent_id = agent_user_id
            handoff.status = HandoffStatus.ACCEPTED
            handoff.accepted_at = now
            await self.handoffs.save(handoff)

        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS, CacheTags.AGENTS)
        await self.hub.conversation_assigned(
            conversation.reference,
            str(agent_user_id),
            agent_user.effective_name or DEFAULT_AGENT_NAME,
        )

        logger.info(
            "Conversation assigned",
            extra={"conversation_reference": reference, "agent_id": str(agent_user_id)},
        )
        return Result.success(conversation.id)

    async def complete(
        self,
        reference: str,
        request: CompleteConversationRequest,
        user: Optional[UserInfo],
    ) -> Result[UUID]:
        """Close a conversation with a resolution and give it back to the bot."""
        if user is None:
            return Result.failure(msg.USER_NOT_AUTHENTICATED, code=ErrorCode.UNAUTHORIZED)

        conversation = await self.conversations.get_by_reference(reference)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND, code=ErrorCode.CONVERSATION_NOT_FOUND)

        now = utcnow()
        previous_agent_id = conversation.current_agent_id

        conversation.status = ConversationStatus.COMPLETED
        conversation.mode = ConversationMode.BOT
        conversation.completed_at = now
        conversation.last_activity_at = now
        conversation.resolution_category = request.category
        conversation.resolution_notes = request.notes
        conversation.resolved_by_agent_id = user.id
        conversation.current_agent_id = None
        await self.conversations.save(conversation)

        await self._release_agent(previous_agent_id)
        await self._complete_accepted_handoff(conversation.id, now)

        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS, CacheTags.AGENTS, CacheTags.DASHBOARD)
        await self.hub.conversation_completed(
            conversation.reference,
            str(previous_agent_id) if previous_agent_id else "",
        )

        logger.info(
            "Conversation completed",
            extra={
                "conversation_reference": reference,
                "resolution_category": request.category.value,
                "resolved_by": str(user.id),
            },
        )
        return Result.success(conversation.id)

    async def transfer(self, request: TransferConversationRequest, user: Optional[UserInfo] = None) -> Result[UUID]:
        """
        Move an active conversation to another agent.

        ``force`` skips the target's availability and capacity checks
        (supervisor override).
        """
        conversation = await self.conversations.find_by_id_or_reference(request.conversation_id)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND, code=ErrorCode.CONVERSATION_NOT_FOUND)

        if conversation.status != ConversationStatus.ACTIVE:
            return Result.failure(msg.CONVERSATION_NOT_TRANSFERABLE, code=ErrorCode.CONFLICT)

        target_user_id = parse_uuid(request.to_agent_id)
        found = await self.agents.get_with_user(target_user_id) if target_user_id else None
        if found is None:
            return Result.failure(msg.TARGET_AGENT_NOT_FOUND, code=ErrorCode.AGENT_NOT_FOUND)
        target, _ = found

        if not request.force:
            failure = self._availability_failure(target, msg.AGENT_NOT_AVAILABLE, msg.AGENT_AT_CAPACITY)
            if failure:
                return Result.failure(failure, code=ErrorCode.AGENT_UNAVAILABLE)

        now = utcnow()
        from_agent_id = conversation.current_agent_id
        await self._release_agent(from_agent_id)

        target.increment_load()
        await self.agents.save(target)

        conversation.current_agent_id = target_user_id
        conversation.touch()
        await self.conversations.save(conversation)

        await self.handoffs.create(
            ConversationHandoff(
                conversation_id=conversation.id,
                conversation_reference=conversation.reference,
                handoff_type=HandoffType.AGENT_TO_AGENT,
                from_participant_type=ParticipantType.AGENT,
                to_participant_type=ParticipantType.AGENT,
                from_agent_id=from_agent_id,
                to_agent_id=target_user_id,
                reason=request.reason or DEFAULT_TRANSFER_REASON,
                status=HandoffStatus.ACCEPTED,
                initiated_at=now,
                accepted_at=now,
                tenant_id=conversation.tenant_id,
            )
        )

        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS, CacheTags.AGENTS, CacheTags.TRANSFER)
        await self.hub.conversation_transferred(
            conversation.reference,
            str(from_agent_id) if from_agent_id else None,
            str(target_user_id),
            request.reason,
        )

        logger.info(
            "Conversation transferred",
            extra={
                "conversation_reference": conversation.reference,
                "from_agent_id": str(from_agent_id) if from_agent_id else None,
                "to_agent_id": str(target_user_id),
                "forced": request.force,
                "transferred_by": str(user.id) if user else None,
            },
        )
        return Result.success(conversation.id)

    async def reassign(self, conversation_id: str, request: ReassignAgentRequest) -> Result[UUID]:
        """Supervisor reassignment: closes the current agent's handoff and opens one for the new agent."""
        conversation = await self.conversations.find_by_reference_or_id(conversation_id)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND, code=ErrorCode.CONVERSATION_NOT_FOUND)

        found = await self.agents.get_with_user(request.new_agent_id)
        if found is None:
            return Result.failure(msg.NEW_AGENT_NOT_FOUND, code=ErrorCode.AGENT_NOT_FOUND)
        new_agent, _ = found

        failure = self._availability_failure(new_agent, msg.NEW_AGENT_NOT_AVAILABLE, msg.NEW_AGENT_AT_CAPACITY)
        if failure:
            return Result.failure(failure, code=ErrorCode.AGENT_UNAVAILABLE)

        now = utcnow()
        previous_agent_id = conversation.current_agent_id
        if previous_agent_id is not None:
            previous = await self.agents.get_by_user_id(previous_agent_id)
            if previous is not None:
                previous.decrement_load()
                await self.agents.save(previous)

        new_agent.increment_load()
        await self.agents.save(new_agent)

        conversation.current_agent_id = request.new_agent_id
        conversation.mode = ConversationMode.HUMAN
        conversation.touch()
        await self.conversations.save(conversation)

        await self._complete_accepted_handoff(conversation.id, now)
        await self.handoffs.create(
            ConversationHandoff(
                conversation_id=conversation.id,
                conversation_reference=conversation.reference,
                handoff_type=HandoffType.AGENT_TO_AGENT,
                from_participant_type=ParticipantType.AGENT,
                to_participant_type=ParticipantType.AGENT,
                from_agent_id=previous_agent_id,
                to_agent_id=request.new_agent_id,
                reason=request.reason or DEFAULT_REASSIGN_REASON,
                status=HandoffStatus.ACCEPTED,
                initiated_at=now,
                accepted_at=now,
                tenant_id=conversation.tenant_id,
            )
        )

        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS, CacheTags.AGENTS, CacheTags.TRANSFER)
        await self.hub.conversation_reassigned(
            conversation.reference,
            str(previous_agent_id) if previous_agent_id else None,
            str(request.new_agent_id),
            request.reason,
        )

        logger.info(
            "Conversation reassigned",
            extra={
                "conversation_reference": conversation.reference,
                "previous_agent_id": str(previous_agent_id) if previous_agent_id else None,
                "new_agent_id": str(request.new_agent_id),
            },
        )
        return Result.success(conversation.id)

    # ========================================
    # Agent messages and viewers
    # ========================================

    async def send_agent_message(
        self,
        reference: str,
        request: SendAgentMessageRequest,
        user: Optional[UserInfo],
    ) -> Result[UUID]:
        """
        Store an agent reply and relay it to the customer through the bot.

        Relay errors are logged; the message stays stored so the agent
        console shows it.
        """
        if user is None:
            return Result.failure(msg.USER_NOT_AUTHENTICATED_STRICT, code=ErrorCode.UNAUTHORIZED)

        conversation = await self.conversations.get_by_reference(reference)
        if conversation is None:
            return Result.failure(msg.CONVERSATION_NOT_FOUND_STRICT, code=ErrorCode.CONVERSATION_NOT_FOUND)

        if conversation.current_agent_id != user.id:
            return Result.failure(msg.NOT_ASSIGNED_TO_CONVERSATION, code=ErrorCode.RESOURCE_ACCESS_DENIED)

        found = await self.agents.get_with_user(user.id)
        if found is None:
            return Result.failure(msg.AGENT_PROFILE_NOT_FOUND, code=ErrorCode.AGENT_NOT_FOUND)
        _, agent_user = found
        agent_name = agent_user.effective_name or DEFAULT_AGENT_NAME

        message = ConversationMessage(
            conversation_id=conversation.id,
            bot_framework_conversation_id=conversation.reference,
            role="agent",
            content=request.content,
            timestamp=utcnow(),
            user_id=str(user.id),
            user_name=agent_name,
            is_escalated=True,
            tenant_id=conversation.tenant_id,
        )
        await self.messages.create(message)

        conversation.message_count += 1
        conversation.touch()
        await self.conversations.save(conversation)

        if conversation.channel_id == WHATSAPP_CHANNEL:
            recipient = conversation.whatsapp_phone_number or conversation.reference.split(":", 1)[-1]
            if not await self.whatsapp.send_text_message(recipient, request.content):
                logger.error(
                    "Failed to relay agent message",
                    extra={"conversation_reference": reference, "channel": WHATSAPP_CHANNEL},
                )
        else:
            try:
                await self.bot_relay.send_agent_activity(
                    conversation_id=conversation.reference,
                    content=request.content,
                    agent_id=str(user.id),
                    agent_name=agent_name,
                    tenant_id=conversation.tenant_id,
                    conversation_reference=conversation.channel_data or conversation.reference,
                )
            except ExternalServiceError as e:
                logger.error(
                    "Failed to relay agent message",
                    extra={"conversation_reference": reference, "error": e.message},
                )

        self.cache.invalidate_on_commit(self.session, CacheTags.CONVERSATIONS)
        await self.hub.new_conversation_message(
            conversation.id,
            conversation.reference,
            ConversationMessageDto.model_validate(message).model_dump(mode="json"),
        )
        return Result.success(message.id)

    async def join_viewers(self, conversation_id: str, user: Optional[UserInfo]) -> Result[int]:
        """Subscribe the caller's open realtime connections to a conversation. Returns the connection count."""
        if user is None:
            return Result.failure(msg.USER_NOT_AUTHENTICATED_STRICT, code=ErrorCode.UNAUTHORIZED)

        parsed_id = parse_uuid(conversation_id)
        if parsed_id is None:
            return Result.failure(msg.INVALID_CONVERSATION_ID, code=ErrorCode.VALIDATION_ERROR)

        try:
            conversation = await self.conversations.get(parsed_id)
            if conversation is None:
                return Result.failure(msg.CONVERSATION_NOT_FOUND_OR_DENIED, code=ErrorCode.CONVERSATION_NOT_FOUND)
            joined = await self.hub.join_conversation(str(user.id), conversation.id)
        except Exception as e:
            logger.exception("Failed to join conversation viewers", extra={"conversation_id": conversation_id})
            return Result.failure(msg.JOIN_VIEWERS_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        return Result.success(joined)

    # ========================================
    # Insights
    # ========================================

    async def create_insight(self, conversation_id: UUID, request: CreateInsightRequest) -> Result[UUID]:
        try:
            conversation = await self.conversations.get(conversation_id)
            if conversation is None:
                return Result.failure(
                    msg.CONVERSATION_ID_NOT_FOUND_TEMPLATE.format(conversation_id=conversation_id),
                    code=ErrorCode.CONVERSATION_NOT_FOUND,
                )
            if await self.insights.exists_for(conversation_id):
                return Result.failure(
                    msg.INSIGHT_ALREADY_EXISTS_TEMPLATE.format(conversation_id=conversation_id),
                    code=ErrorCode.DUPLICATE_RESOURCE,
                )

            insight = await self.insights.create(
                ConversationInsight(
                    conversation_id=conversation_id,
                    tenant_id=conversation.tenant_id,
                    **request.model_dump(),
                )
            )
        except SQLAlchemyError as e:
            logger.exception("Failed to create conversation insight", extra={"conversation_id": str(conversation_id)})
            return Result.failure(msg.INSIGHT_CREATE_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.DASHBOARD)
        return Result.success(insight.id)
