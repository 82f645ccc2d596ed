"""Small response bodies shared by several routes."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DtoModel(BaseModel):
    """Base for response DTOs built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class IdResponse(BaseModel):
    """Id of the entity a command created or changed."""

    id: UUID = Field(..., description="Entity id", examples=["550e8400-e29b-41d4-a716-446655440000"])


class StatusResponse(BaseModel):
    succeeded: bool = Field(default=True)
    message: str | None = Field(default=None, examples=["Conversation completed"])
    data: dict[str, Any] | None = None
