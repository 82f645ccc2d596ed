"""
Conversation request and response schemas.

Request models carry the validation rules of the conversation commands, so
an invalid body is rejected with the same message whether it arrives over
HTTP or is built by a background job.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from support_service.api.schemas.analytics import AgentPerformance, ChartPoint, GroupPerformance
from support_service.api.schemas.base import DtoModel
from support_service.domain import error_messages as msg
from support_service.domain.enums import (
    ConversationMode,
    ConversationStatus,
    HandoffStatus,
    HandoffType,
    ParticipantType,
    ResolutionCategory,
)

_PRIORITY_TEXT = {1: "Standard", 2: "High", 3: "Critical"}


# ========================================
# Response DTOs
# ========================================


class ConversationDto(DtoModel):
    """
    Conversation summary row used by every list view.

    ``current_agent_name`` and ``resolved_by_agent_name`` are not columns;
    queries fill them from the users table after loading the page.
    """

    id: UUID
    reference: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    whatsapp_phone_number: Optional[str] = None
    status: ConversationStatus
    mode: ConversationMode
    priority: int = 1
    current_agent_id: Optional[UUID] = None
    current_agent_name: Optional[str] = None
    start_time: datetime
    escalated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    escalation_reason: Optional[str] = None
    conversation_summary: Optional[str] = None
    message_count: int = 0
    last_activity_at: datetime
    created_at: datetime
    thread_id: Optional[str] = None
    max_turns: int = 10
    resolution_category: Optional[ResolutionCategory] = None
    resolution_notes: Optional[str] = None
    resolved_by_agent_id: Optional[UUID] = None
    resolved_by_agent_name: Optional[str] = None
    tenant_id: str

    @computed_field
    @property
    def is_escalated(self) -> bool:
        return self.mode in (ConversationMode.HUMAN, ConversationMode.ESCALATING)

    @computed_field
    @property
    def priority_text(self) -> str:
        return _PRIORITY_TEXT.get(self.priority, "Standard")

    @computed_field
    @property
    def duration_seconds(self) -> float:
        end = self.completed_at or datetime.now(timezone.utc).replace(tzinfo=None)
        return (end - self.created_at).total_seconds()


class ConversationMessageDto(DtoModel):
    id: UUID
    conversation_id: UUID
    bot_framework_conversation_id: str
    role: str
    content: str
    timestamp: datetime
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    channel_id: Optional[str] = None
    tool_call_id: Optional[str] = None
    image_type: Optional[str] = None
    attachments: Optional[str] = None
    is_escalated: bool = False


class HandoffDto(DtoModel):
    id: UUID
    conversation_id: UUID
    handoff_type: HandoffType
    from_participant_type: ParticipantType
    to_participant_type: ParticipantType
    from_agent_id: Optional[UUID] = None
    to_agent_id: Optional[UUID] = None
    reason: str
    conversation_transcript: Optional[str] = None
    status: HandoffStatus
    initiated_at: datetime
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None


class ParticipantDto(DtoModel):
    id: UUID
    type: ParticipantType
    participant_id: Optional[str] = None
    participant_name: Optional[str] = None
    whatsapp_phone_number: Optional[str] = None
    joined_at: datetime
    left_at: Optional[datetime] = None


class ConversationDetailsDto(BaseModel):
    """Conversation with its transcript, participants and hand-off history."""

    conversation: ConversationDto
    messages: list[ConversationMessageDto] = Field(default_factory=list)
    participants: list[ParticipantDto] = Field(default_factory=list)
    handoffs: list[HandoffDto] = Field(default_factory=list)


class EscalationPopupDto(BaseModel):
    """
    Data shown to agents when a conversation is escalated.

    Built from the escalation request (live popup) or from the stored
    conversation (context view).
    """

    conversation_reference: str
    customer_name: str
    phone_number: str
    escalation_reason: str
    priority: int = 1
    escalated_at: datetime
    last_message: Optional[str] = None
    message_count: int = 0
    conversation_duration_seconds: float = 0.0
    conversation_summary: Optional[str] = None

    @classmethod
    def build(
        cls,
        conversation_reference: str,
        customer_name: str,
        phone_number: str,
        escalation_reason: str,
        priority: int,
        escalated_at: datetime,
        duration: timedelta,
        **fields: Any,
    ) -> "EscalationPopupDto":
        return cls(
            conversation_reference=conversation_reference,
            customer_name=customer_name,
            phone_number=phone_number,
            escalation_reason=escalation_reason,
            priority=priority,
            escalated_at=escalated_at,
            conversation_duration_seconds=max(duration.total_seconds(), 0.0),
            **fields,
        )


class PendingEscalationDto(BaseModel):
    conversation_id: UUID
    conversation_reference: str
    customer_name: str
    phone_number: str
    escalation_reason: str
    priority: int
    escalated_at: datetime
    last_activity_at: datetime


class ConversationInsightDto(DtoModel):
    id: UUID
    conversation_id: UUID
    sentiment_score: float
    sentiment_label: str
    key_themes: list[str] = Field(default_factory=list)
    resolution_success: Optional[bool] = None
    customer_satisfaction_indicators: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    processing_model: str
    processed_at: datetime
    processing_duration_seconds: float
    warnings: list[str] = Field(default_factory=list)


class DashboardMetricsDto(BaseModel):
    """Conversation KPIs over the last ``data_period_days`` days."""

    total_conversations: int = 0
    average_resolution_time_hours: float = 0.0
    average_sentiment_score: float = 0.0
    escalation_rate: float = 0.0
    agent_response_time_minutes: float = 0.0
    customer_satisfaction_score: float = 0.0

    new_conversations_last_24_hours: int = 0
    completed_last_24_hours: int = 0
    active_conversations: int = 0
    escalated_conversations: int = 0

    trend_percentage: float = 0.0
    trend_direction: str = "stable"

    status_distribution: dict[str, int] = Field(default_factory=dict)
    mode_distribution: dict[str, int] = Field(default_factory=dict)
    priority_distribution: dict[int, int] = Field(default_factory=dict)
    sentiment_distribution: dict[str, int] = Field(default_factory=dict)
    resolution_distribution: dict[str, int] = Field(default_factory=dict)

    last_updated: datetime
    data_period_days: int = 30

    @computed_field
    @property
    def sentiment_label(self) -> str:
        if self.average_sentiment_score >= 0.1:
            return "Positive"
        if self.average_sentiment_score <= -0.1:
            return "Negative"
        return "Neutral"


class ConversationPerformanceStatsDto(BaseModel):
    daily_volume: list[ChartPoint] = Field(default_factory=list)
    hourly_distribution: list[ChartPoint] = Field(default_factory=list)
    sentiment_trend: list[ChartPoint] = Field(default_factory=list)

    median_resolution_time_hours: float = 0.0
    p90_resolution_time_hours: float = 0.0
    p95_resolution_time_hours: float = 0.0
    total_completed_conversations: int = 0

    agent_performance: list[AgentPerformance] = Field(default_factory=list)
    mode_performance: list[GroupPerformance] = Field(default_factory=list)
    resolution_category_performance: list[GroupPerformance] = Field(default_factory=list)

    period_days: int = 30
    generated_at: datetime


# ========================================
# Requests
# ========================================



class AddMessageRequest(BaseModel):
    """Message reported by the bot for a channel conversation."""

    model_config = ConfigDict(str_strip_whitespace=True)

    reference: str = Field(..., min_length=1, max_length=450, description="Channel conversation id")
    role: str = Field(..., min_length=1, max_length=20, examples=["user", "assistant"])
    content: str = Field(default="")
    user_id: Optional[str] = Field(default=None, max_length=450)
    user_name: Optional[str] = Field(default=None, max_length=200)
    channel_id: Optional[str] = Field(default=None, max_length=50)
    tool_call_id: Optional[str] = Field(default=None, max_length=200)
    tool_calls: Optional[str] = None
    image_type: Optional[str] = Field(default=None, max_length=50)
    image_data: Optional[str] = None
    attachments: Optional[str] = None
    timestamp: Optional[datetime] = None


class EscalateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reference: str = Field(..., min_length=1, max_length=450)
    reason: str = Field(default="", max_length=1000, examples=["Customer asked for a human, urgent billing issue"])
    transcript: Optional[str] = Field(default=None, description="Transcript of the bot conversation so far")
    whatsapp_phone_number: Optional[str] = Field(default=None, max_length=20)


class AssignAgentRequest(BaseModel):
    agent_id: UUID = Field(..., description="User id of the agent")


class CompleteConversationRequest(BaseModel):
    category: ResolutionCategory = Field(..., examples=["Resolved"])
    notes: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError(msg.RESOLUTION_NOTES_REQUIRED)
        if len(v) < 20:
            raise ValueError(msg.RESOLUTION_NOTES_TOO_SHORT)
        if len(v) > 2000:
            raise ValueError(msg.RESOLUTION_NOTES_TOO_LONG)
        return v


class TransferConversationBody(BaseModel):
    to_agent_id: str = Field(default="")
    reason: Optional[str] = None
    force: bool = Field(default=False, description="Skip availability and capacity checks")


class TransferConversationRequest(TransferConversationBody):
    model_config = ConfigDict(validate_default=True)

    conversation_id: str = ""

    @field_validator("conversation_id")
    @classmethod
    def validate_conversation_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(msg.CONVERSATION_ID_REQUIRED)
        return v.strip()

    @field_validator("to_agent_id")
    @classmethod
    def validate_to_agent_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(msg.TARGET_AGENT_ID_REQUIRED)
        return v.strip()

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 500:
            raise ValueError(msg.TRANSFER_REASON_TOO_LONG)
        return v


class ReassignAgentRequest(BaseModel):
    new_agent_id: UUID
    reason: Optional[str] = Field(default=None, max_length=1000)


class SendAgentMessageRequest(BaseModel):
    content: str = Field(default="", validate_default=True)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(msg.AGENT_MESSAGE_REQUIRED)
        if len(v) > 1000:
            raise ValueError(msg.AGENT_MESSAGE_TOO_LONG)
        return v


def _validate_items(items: list[str], max_items: int, max_length: int, too_many: str, invalid: str) -> list[str]:
    if len(items) > max_items:
        raise ValueError(too_many)
    for item in items:
        if not item or not item.strip() or len(item) > max_length:
            raise ValueError(invalid)
    return items


class CreateInsightRequest(BaseModel):
    """Analysis result for a completed conversation."""

    sentiment_score: float = 0.0
    sentiment_label: str = ""
    key_themes: list[str] = Field(default_factory=list)
    resolution_success: Optional[bool] = None
    customer_satisfaction_indicators: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    processing_model: str = ""
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    processing_duration_seconds: float = 0.0
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(validate_default=True)

    @field_validator("sentiment_score")
    @classmethod
    def validate_sentiment_score(cls, v: float) -> float:
        if v < -1.0 or v > 1.0:
            raise ValueError(msg.SENTIMENT_SCORE_RANGE)
        return v

    @field_validator("sentiment_label")
    @classmethod
    def validate_sentiment_label(cls, v: str) -> str:
        if not v or not v.strip() or len(v) > 50:
            raise ValueError(msg.SENTIMENT_LABEL_INVALID)
        return v

    @field_validator("processing_model")
    @classmethod
    def validate_processing_model(cls, v: str) -> str:
        if not v or not v.strip() or len(v) > 50:
            raise ValueError(msg.PROCESSING_MODEL_INVALID)
        return v

    @field_validator("key_themes")
    @classmethod
    def validate_key_themes(cls, v: list[str]) -> list[str]:
        return _validate_items(v, 10, 100, msg.KEY_THEMES_TOO_MANY, msg.KEY_THEME_INVALID)

    @field_validator("customer_satisfaction_indicators")
    @classmethod
    def validate_indicators(cls, v: list[str]) -> list[str]:
        return _validate_items(v, 10, 200, msg.INDICATORS_TOO_MANY, msg.INDICATOR_INVALID)

    @field_validator("recommendations")
    @classmethod
    def validate_recommendations(cls, v: list[str]) -> list[str]:
        return _validate_items(v, 10, 500, msg.RECOMMENDATIONS_TOO_MANY, msg.RECOMMENDATION_INVALID)

    @field_validator("warnings")
    @classmethod
    def validate_warnings(cls, v: list[str]) -> list[str]:
        return _validate_items(v, 20, 1000, msg.WARNINGS_TOO_MANY, msg.WARNING_INVALID)

    @field_validator("processed_at")
    @classmethod
    def validate_processed_at(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        limit = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(minutes=5)
        if v > limit:
            raise ValueError(msg.PROCESSED_AT_IN_FUTURE)
        return v

    @field_validator("processing_duration_seconds")
    @classmethod
    def validate_processing_duration(cls, v: float) -> float:
        if v < 0 or v > 3600:
            raise ValueError(msg.PROCESSING_DURATION_RANGE)
        return v
