"""Agent, notification preference and auto-assignment schemas."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from support_service.api.schemas.base import DtoModel
from support_service.domain import error_messages as msg
from support_service.domain.enums import AgentStatus, AssignmentStrategy


class AgentDto(BaseModel):
    """
    Agent profile joined with its user.

    ``id`` is the user id, the identifier every agent command accepts.
    """

    id: UUID
    agent_profile_id: UUID
    user_name: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    status: AgentStatus
    max_concurrent_conversations: int
    active_conversation_count: int
    last_active_at: Optional[datetime] = None
    skills: Optional[str] = None
    priority: int
    notes: Optional[str] = None
    is_available: bool
    can_take_conversations: bool
    workload_percentage: float
    tenant_id: str

    @classmethod
    def from_agent(cls, agent, user) -> "AgentDto":
        return cls(
            id=user.id,
            agent_profile_id=agent.id,
            user_name=user.user_name,
            display_name=user.effective_name,
            email=user.email,
            status=agent.status,
            max_concurrent_conversations=agent.max_concurrent_conversations,
            active_conversation_count=agent.active_conversation_count,
            last_active_at=agent.last_active_at,
            skills=agent.skills,
            priority=agent.priority,
            notes=agent.notes,
            is_available=agent.is_available,
            can_take_conversations=agent.can_take_conversations,
            workload_percentage=agent.workload_percentage,
            tenant_id=agent.tenant_id,
        )


class ConvertUserToAgentRequest(BaseModel):
    user_id: UUID
    max_concurrent_conversations: int = 5
    priority: int = 1
    skills: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("max_concurrent_conversations")
    @classmethod
    def validate_max_conversations(cls, v: int) -> int:
        if v < 1 or v > 50:
            raise ValueError(msg.MAX_CONVERSATIONS_RANGE)
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError(msg.AGENT_PRIORITY_RANGE)
        return v

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 1000:
            raise ValueError(msg.SKILLS_TOO_LONG)
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 2000:
            raise ValueError(msg.NOTES_TOO_LONG)
        return v


class UpdateAgentStatusRequest(BaseModel):
    status: AgentStatus = Field(..., examples=["Available"])


class NotificationPreferencesDto(DtoModel):
    enable_browser_notifications: bool = True
    enable_audio_alerts: bool = True
    enable_email_notifications: bool = False
    notify_on_standard_priority: bool = True
    notify_on_high_priority: bool = True
    notify_on_critical_priority: bool = True
    notify_during_break: bool = False
    notify_when_offline: bool = False
    audio_volume: int = 50
    custom_sound_url: Optional[str] = None


class UpdatePreferencesRequest(NotificationPreferencesDto):
    """Full replacement of the caller's preferences. ``audio_volume`` is clamped to 0..100."""

    custom_sound_url: Optional[str] = Field(default=None, max_length=500)


class AutoAssignmentSettingsDto(BaseModel):
    tenant_id: str = ""
    is_enabled: bool = True
    strategy: AssignmentStrategy = AssignmentStrategy.ROUND_ROBIN
    respect_agent_availability: bool = True
    respect_workload_limits: bool = True
    max_retry_attempts: int = Field(default=3, ge=0, le=10)
    last_modified: datetime = Field(default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    last_modified_by: Optional[str] = None


class UpdateAutoAssignmentSettingsRequest(BaseModel):
    is_enabled: bool = True
    strategy: AssignmentStrategy = AssignmentStrategy.ROUND_ROBIN
    respect_agent_availability: bool = True
    respect_workload_limits: bool = True
    max_retry_attempts: int = Field(default=3, ge=0, le=10)


class AutoAssignmentResult(BaseModel):
    was_assigned: bool
    assigned_agent_id: Optional[str] = None
    assigned_agent_name: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def assigned(cls, agent_id: str, agent_name: str) -> "AutoAssignmentResult":
        return cls(was_assigned=True, assigned_agent_id=agent_id, assigned_agent_name=agent_name)

    @classmethod
    def failed(cls, reason: str) -> "AutoAssignmentResult":
        return cls(was_assigned=False, reason=reason)
