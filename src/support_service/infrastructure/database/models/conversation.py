"""
Conversation models.

A Conversation is one chat session with a customer, keyed externally by
``reference`` (the channel's conversation id, e.g. ``whatsapp:+15550001``).
It starts with the bot and may be escalated to a human agent; every change
of hands is recorded as a ConversationHandoff.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, Index, Text
from sqlmodel import Field

from support_service.domain.enums import (
    ConversationMode,
    ConversationStatus,
    HandoffStatus,
    HandoffType,
    ParticipantType,
    ResolutionCategory,
)
from support_service.infrastructure.database.base_model import BaseModel, TenantMixin, enum_type, utcnow


class Conversation(BaseModel, TenantMixin, table=True):
    """
    Chat session with a customer.

    Attributes:
        reference: External conversation id (unique)
        channel_data: Serialized channel reference used to reply on the channel
        user_id / user_name: Customer identity as reported by the channel
        channel_id: Channel the conversation arrived on (e.g. ``whatsapp``)
        whatsapp_phone_number: Customer phone number for WhatsApp sessions
        status: Lifecycle status
        mode: Who is answering (bot, escalating, human)
        priority: 1 Standard, 2 High, 3 Critical
        current_agent_id: User id of the assigned agent
        resolved_by_agent_id: User id of the agent that completed the conversation

    Indexes:
        - reference: Lookup by channel id (unique)
        - tenant_id + status + mode: Escalation queues
        - current_agent_id: "My conversations" views
    """

    __tablename__ = "conversations"

    reference: str = Field(nullable=False, unique=True, index=True, max_length=450)
    channel_data: Optional[str] = Field(default=None, sa_type=Text)
    user_id: Optional[str] = Field(default=None, max_length=450)
    user_name: Optional[str] = Field(default=None, max_length=200)
    channel_id: Optional[str] = Field(default=None, max_length=50)
    whatsapp_phone_number: Optional[str] = Field(default=None, max_length=20, index=True)
    status: ConversationStatus = Field(
        default=ConversationStatus.ACTIVE,
        sa_type=enum_type(ConversationStatus),
        nullable=False,
    )
    mode: ConversationMode = Field(
        default=ConversationMode.BOT,
        sa_type=enum_type(ConversationMode),
        nullable=False,
    )
    priority: int = Field(default=1, nullable=False)
    current_agent_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True)
    start_time: datetime = Field(default_factory=utcnow, nullable=False)
    escalated_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    escalation_reason: Optional[str] = Field(default=None, max_length=1000)
    conversation_summary: Optional[str] = Field(default=None, sa_type=Text)
    message_count: int = Field(default=0, nullable=False)
    last_activity_at: datetime = Field(default_factory=utcnow, nullable=False)
    thread_id: Optional[str] = Field(default=None, max_length=200)
    max_turns: int = Field(default=10, nullable=False)
    resolution_category: Optional[ResolutionCategory] = Field(
        default=None,
        sa_type=enum_type(ResolutionCategory),
    )
    resolution_notes: Optional[str] = Field(default=None, max_length=2000)
    resolved_by_agent_id: Optional[UUID] = Field(default=None, foreign_key="users.id")

    __table_args__ = (
        Index("ix_conversations_tenant_status_mode", "tenant_id", "status", "mode"),
    )

    @property
    def is_escalated(self) -> bool:
        return self.mode in (ConversationMode.HUMAN, ConversationMode.ESCALATING)

    @property
    def is_active(self) -> bool:
        return self.status == ConversationStatus.ACTIVE

    @property
    def duration(self) -> timedelta:
        return (self.completed_at or utcnow()) - self.created_at

    def touch(self) -> None:
        self.last_activity_at = utcnow()


class ConversationMessage(BaseModel, TenantMixin, table=True):
    """Single message in a conversation (customer, bot, agent, system or tool)."""

    __tablename__ = "conversation_messages"

    conversation_id: UUID = Field(foreign_key="conversations.id", nullable=False, index=True)
    bot_framework_conversation_id: str = Field(nullable=False, max_length=450, index=True)
    role: str = Field(nullable=False, max_length=20)
    content: str = Field(default="", sa_type=Text)
    tool_call_id: Optional[str] = Field(default=None, max_length=200)
    tool_calls: Optional[str] = Field(default=None, sa_type=Text)
    image_type: Optional[str] = Field(default=None, max_length=50)
    image_data: Optional[str] = Field(default=None, sa_type=Text)
    attachments: Optional[str] = Field(default=None, sa_type=Text)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    user_id: Optional[str] = Field(default=None, max_length=450)
    user_name: Optional[str] = Field(default=None, max_length=200)
    channel_id: Optional[str] = Field(default=None, max_length=50)
    is_escalated: bool = Field(default=False)


class ConversationHandoff(BaseModel, TenantMixin, table=True):
    """Record of a conversation changing hands between bot, agents and supervisors."""

    __tablename__ = "conversation_handoffs"

    conversation_id: UUID = Field(foreign_key="conversations.id", nullable=False, index=True)
    conversation_reference: str = Field(nullable=False, max_length=450)
    handoff_type: HandoffType = Field(sa_type=enum_type(HandoffType), nullable=False)
    from_participant_type: ParticipantType = Field(sa_type=enum_type(ParticipantType), nullable=False)
    to_participant_type: ParticipantType = Field(sa_type=enum_type(ParticipantType), nullable=False)
    from_agent_id: Optional[UUID] = Field(default=None)
    to_agent_id: Optional[UUID] = Field(default=None)
    reason: str = Field(default="", max_length=1000)
    conversation_transcript: Optional[str] = Field(default=None, sa_type=Text)
    context_data: Optional[str] = Field(default=None, sa_type=Text)
    status: HandoffStatus = Field(
        default=HandoffStatus.INITIATED,
        sa_type=enum_type(HandoffStatus),
        nullable=False,
    )
    initiated_at: datetime = Field(default_factory=utcnow, nullable=False)
    accepted_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @property
    def handoff_duration(self) -> Optional[timedelta]:
        if self.completed_at is None:
            return None
        return self.completed_at - self.initiated_at

    @property
    def is_completed(self) -> bool:
        return self.status == HandoffStatus.COMPLETED


class ConversationParticipant(BaseModel, TenantMixin, table=True):
    __tablename__ = "conversation_participants"

    conversation_id: UUID = Field(foreign_key="conversations.id", nullable=False, index=True)
    type: ParticipantType = Field(sa_type=enum_type(ParticipantType), nullable=False)
    participant_id: Optional[str] = Field(default=None, max_length=450)
    participant_name: Optional[str] = Field(default=None, max_length=200)
    whatsapp_phone_number: Optional[str] = Field(default=None, max_length=20)
    joined_at: datetime = Field(default_factory=utcnow, nullable=False)
    left_at: Optional[datetime] = Field(default=None)


class ConversationInsight(BaseModel, TenantMixin, table=True):
    """
    Post-conversation analysis.

    ``key_themes``, ``customer_satisfaction_indicators`` and
    ``recommendations`` are JSON arrays of strings.
    """

    __tablename__ = "conversation_insights"

    conversation_id: UUID = Field(foreign_key="conversations.id", nullable=False, unique=True, index=True)
    sentiment_score: float = Field(default=0.0, nullable=False)
    sentiment_label: str = Field(nullable=False, max_length=50)
    key_themes: list[str] = Field(default_factory=list, sa_type=JSON)
    resolution_success: Optional[bool] = Field(default=None)
    customer_satisfaction_indicators: list[str] = Field(default_factory=list, sa_type=JSON)
    recommendations: list[str] = Field(default_factory=list, sa_type=JSON)
    processing_model: str = Field(nullable=False, max_length=50)
    processed_at: datetime = Field(default_factory=utcnow, nullable=False)
    processing_duration_seconds: float = Field(default=0.0, nullable=False)
    warnings: list[str] = Field(default_factory=list, sa_type=JSON)
