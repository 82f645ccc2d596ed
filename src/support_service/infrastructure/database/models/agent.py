"""Agent profile and notification preference models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import Index, UniqueConstraint
from sqlmodel import Field

from support_service.domain.enums import AgentStatus, ConversationPriority
from support_service.infrastructure.database.base_model import BaseModel, TenantMixin, enum_type


class Agent(BaseModel, TenantMixin, table=True):
    """
    Staff user eligible to take escalated conversations.

    Commands address agents by ``user_id`` (the owning user), not by the
    agent row id.

    Attributes:
        user_id: Owning user (unique)
        status: Presence, Offline until the agent signs in
        max_concurrent_conversations: Capacity
        active_conversation_count: Conversations currently assigned, never negative
        last_active_at: Last status change or activity
        skills: Free text skill tags
        priority: Higher values are preferred when ordering agents
        notes: Supervisor notes
    """

    __tablename__ = "agents"

    user_id: UUID = Field(foreign_key="users.id", nullable=False, unique=True, index=True)
    status: AgentStatus = Field(
        default=AgentStatus.OFFLINE,
        sa_type=enum_type(AgentStatus),
        nullable=False,
        index=True,
    )
    max_concurrent_conversations: int = Field(default=5, nullable=False)
    active_conversation_count: int = Field(default=0, nullable=False)
    last_active_at: Optional[datetime] = Field(default=None)
    skills: Optional[str] = Field(default=None, max_length=1000)
    priority: int = Field(default=1, nullable=False)
    notes: Optional[str] = Field(default=None, max_length=2000)

    __table_args__ = (
        Index("ix_agents_tenant_id_status", "tenant_id", "status"),
    )

    @property
    def is_available(self) -> bool:
        return (
            self.status == AgentStatus.AVAILABLE
            and self.active_conversation_count < self.max_concurrent_conversations
        )

    @property
    def can_take_conversations(self) -> bool:
        return self.is_available and self.status not in (AgentStatus.BREAK, AgentStatus.OFFLINE)

    @property
    def workload_percentage(self) -> float:
        if self.max_concurrent_conversations <= 0:
            return 0.0
        return self.active_conversation_count / self.max_concurrent_conversations * 100

    def increment_load(self) -> None:
        self.active_conversation_count += 1

    def decrement_load(self) -> None:
        """Release one conversation slot. The count never drops below zero."""
        self.active_conversation_count = max(0, self.active_conversation_count - 1)


class AgentNotificationPreferences(BaseModel, TenantMixin, table=True):
    """Per-agent alert settings for escalation popups, one row per user and tenant."""

    __tablename__ = "agent_notification_preferences"

    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    enable_browser_notifications: bool = Field(default=True)
    enable_audio_alerts: bool = Field(default=True)
    enable_email_notifications: bool = Field(default=False)
    notify_on_standard_priority: bool = Field(default=True)
    notify_on_high_priority: bool = Field(default=True)
    notify_on_critical_priority: bool = Field(default=True)
    notify_during_break: bool = Field(default=False)
    notify_when_offline: bool = Field(default=False)
    audio_volume: int = Field(default=50, ge=0, le=100)
    custom_sound_url: Optional[str] = Field(default=None, max_length=500)

    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_agent_preferences_user_tenant"),
    )

    def should_notify_for_priority(self, priority: int) -> bool:
        if priority == ConversationPriority.HIGH:
            return self.notify_on_high_priority
        if priority == ConversationPriority.CRITICAL:
            return self.notify_on_critical_priority
        return self.notify_on_standard_priority
