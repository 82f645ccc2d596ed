"""Chart and breakdown schemas shared by the issue and conversation statistics."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class ChartPoint(BaseModel):
    """One point of a daily or hourly series. ``day`` is set on daily series only."""

    label: str = Field(..., examples=["Oct 19", "14:00"])
    value: float = 0.0
    day: Optional[date] = None


class GroupPerformance(BaseModel):
    """Volume and resolution figures for one category, priority, channel or mode."""

    name: str
    total: int = 0
    resolved: int = 0
    escalated: Optional[int] = None
    average_resolution_hours: float = 0.0
    average_sentiment_score: Optional[float] = None


class AgentPerformance(BaseModel):
    agent_id: str
    agent_name: str
    total_conversations: int = 0
    completed_conversations: int = 0
    escalated_conversations: int = 0
    average_resolution_hours: float = 0.0
    average_sentiment_score: float = 0.0


class ActivityItem(BaseModel):
    """One line of a recent activity feed."""

    type: str = Field(..., examples=["issue_created", "status_changed"])
    issue_id: str
    reference_number: Optional[str] = None
    description: str
    timestamp: datetime
