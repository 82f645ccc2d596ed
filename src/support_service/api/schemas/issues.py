"""Issue intake, update and linking schemas."""

import re
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from support_service.api.schemas.analytics import ChartPoint, GroupPerformance
from support_service.api.schemas.base import DtoModel
from support_service.domain import error_messages as msg
from support_service.domain.enums import IssueCategory, IssueLinkType, IssuePriority, IssueStatus

E164_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")

INTAKE_CATEGORIES = ("Technical", "Policy", "Claims", "Billing", "Account", "General")
INTAKE_SEVERITIES = ("Critical", "High", "Medium", "Low")
INTAKE_PRIORITIES = ("Urgent", "High", "Medium", "Low")


def _required(value: Optional[str], max_length: int, message: str) -> str:
    if value is None or not value.strip() or len(value) > max_length:
        raise ValueError(message)
    return value


class AttachmentData(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1, max_length=2000)
    size: int = Field(default=0, ge=0)


class IssueIntakeRequest(BaseModel):
    """
    Issue reported through a messaging channel.

    ``category`` and ``priority`` accept a wider vocabulary than the stored
    enums; values without a stored counterpart fall back to General and
    Medium when the issue is created.
    """

    model_config = ConfigDict(validate_default=True)

    reporter_phone: str = Field(default="", examples=["+447700900123"])
    reporter_name: Optional[str] = None
    channel: str = Field(default="", examples=["WhatsApp"])
    category: str = Field(default="", examples=["Technical"])
    product: str = ""
    severity: str = Field(default="", examples=["High"])
    priority: str = Field(default="", examples=["Urgent"])
    summary: str = ""
    description: str = ""
    source_message_ids: list[str] = Field(default_factory=list)
    consent_flag: bool = True
    contact_id: Optional[UUID] = None
    conversation_id: Optional[UUID] = None
    attachments: list[AttachmentData] = Field(default_factory=list)

    @field_validator("reporter_phone")
    @classmethod
    def validate_reporter_phone(cls, v: str) -> str:
        v = (v or "").strip()
        if not v or len(v) > 20 or not E164_PATTERN.match(v):
            raise ValueError(msg.PHONE_NUMBER_FORMAT)
        return v

    @field_validator("reporter_name")
    @classmethod
    def validate_reporter_name(cls, v: Optional[str]) -> Optional[str]:
        if v and v.strip() and len(v) > 100:
            raise ValueError(msg.REPORTER_NAME_TOO_LONG)
        return v

    @field_validator("channel")
    @classmethod
    def validate_channel(cls, v: str) -> str:
        return _required(v, 50, msg.CHANNEL_INVALID)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        if v not in INTAKE_CATEGORIES:
            raise ValueError(msg.INTAKE_CATEGORY_INVALID)
        return v

    @field_validator("product")
    @classmethod
    def validate_product(cls, v: str) -> str:
        return _required(v, 100, msg.PRODUCT_INVALID)

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v: str) -> str:
        if v not in INTAKE_SEVERITIES:
            raise ValueError(msg.INTAKE_SEVERITY_INVALID)
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        if v not in INTAKE_PRIORITIES:
            raise ValueError(msg.INTAKE_PRIORITY_INVALID)
        return v

    @field_validator("summary")
    @classmethod
    def validate_summary(cls, v: str) -> str:
        return _required(v, 200, msg.SUMMARY_INVALID)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _required(v, 2000, msg.DESCRIPTION_INVALID)


class IssueUpdateRequest(BaseModel):
    """Partial update; fields left out are not touched."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[IssueStatus] = None
    priority: Optional[IssuePriority] = None
    category: Optional[IssueCategory] = None
    assigned_user_id: Optional[UUID] = None
    resolution_notes: Optional[str] = Field(default=None, max_length=2000)


class LinkIssuesRequest(BaseModel):
    parent_issue_id: UUID
    child_issue_id: UUID
    link_type: IssueLinkType = IssueLinkType.RELATED
    confidence_score: Optional[float] = None
    created_by_system: bool = False
    metadata: Optional[str] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def validate_distinct_issues(self) -> "LinkIssuesRequest":
        if self.parent_issue_id == self.child_issue_id:
            raise ValueError(msg.CANNOT_LINK_TO_SELF)
        return self

    @field_validator("confidence_score")
    @classmethod
    def validate_confidence(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0.0 <= v <= 1.0:
            raise ValueError(msg.CONFIDENCE_OUT_OF_RANGE)
        return v

    @field_validator("metadata")
    @classmethod
    def validate_metadata(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 1000:
            raise ValueError(msg.LINK_METADATA_TOO_LONG)
        return v

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 500:
            raise ValueError(msg.LINK_REASON_TOO_LONG)
        return v


class UnlinkIssuesRequest(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 500:
            raise ValueError(msg.LINK_REASON_TOO_LONG)
        return v


class AttachmentDto(DtoModel):
    id: UUID
    url: str
    content_type: str
    size_bytes: int
    scan_status: str
    uploaded_at: datetime


class IssueLinkDto(DtoModel):
    id: UUID
    parent_issue_id: UUID
    child_issue_id: UUID
    link_type: IssueLinkType
    confidence_score: Optional[float] = None
    created_by_system: bool
    link_metadata: Optional[str] = None
    created_at: datetime


class EventLogDto(DtoModel):
    id: UUID
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: datetime


class IssueDto(DtoModel):
    id: UUID
    reference_number: str
    title: str
    description: Optional[str] = None
    category: IssueCategory
    priority: IssuePriority
    status: IssueStatus
    reporter_contact_id: Optional[UUID] = None
    reporter_phone: Optional[str] = None
    reporter_name: Optional[str] = None
    assigned_user_id: Optional[UUID] = None
    channel: Optional[str] = None
    product: Optional[str] = None
    severity: Optional[str] = None
    summary: Optional[str] = None
    consent_flag: bool = False
    source_message_ids: list[str] = Field(default_factory=list)
    resolution_notes: Optional[str] = None
    duplicate_of_id: Optional[UUID] = None
    conversation_id: Optional[UUID] = None
    tenant_id: str
    created_at: datetime
    updated_at: datetime


class IssueDetailsDto(BaseModel):
    issue: IssueDto
    attachments: list[AttachmentDto] = Field(default_factory=list)
    links: list[IssueLinkDto] = Field(default_factory=list)
    events: list[EventLogDto] = Field(default_factory=list)


# ========================================
# Statistics
# ========================================


class IssueDashboardMetricsDto(BaseModel):
    """Issue KPIs over the last ``data_period_days`` days."""

    total_open_issues: int = 0
    critical_issues: int = 0
    new_issues_last_24_hours: int = 0
    resolved_last_24_hours: int = 0
    average_resolution_time_hours: float = 0.0
    sla_compliance_percentage: float = 100.0

    trend_percentage: float = 0.0
    trend_direction: str = "stable"

    status_distribution: dict[str, int] = Field(default_factory=dict)
    priority_distribution: dict[str, int] = Field(default_factory=dict)
    category_distribution: dict[str, int] = Field(default_factory=dict)
    channel_distribution: dict[str, int] = Field(default_factory=dict)

    last_updated: datetime
    data_period_days: int = 30

    @computed_field
    @property
    def average_resolution_time_formatted(self) -> str:
        hours = self.average_resolution_time_hours
        return f"{hours / 24:.1f}d" if hours >= 24 else f"{hours:.1f}h"

    @computed_field
    @property
    def sla_compliance_formatted(self) -> str:
        return f"{self.sla_compliance_percentage:.1f}%"


class IssuePerformanceStatsDto(BaseModel):
    daily_volume: list[ChartPoint] = Field(default_factory=list)
    hourly_distribution: list[ChartPoint] = Field(default_factory=list)

    median_resolution_time_hours: float = 0.0
    p90_resolution_time_hours: float = 0.0
    p95_resolution_time_hours: float = 0.0
    total_resolved_issues: int = 0

    category_performance: list[GroupPerformance] = Field(default_factory=list)
    priority_performance: list[GroupPerformance] = Field(default_factory=list)
    channel_performance: list[GroupPerformance] = Field(default_factory=list)

    period_days: int = 30
    generated_at: datetime
