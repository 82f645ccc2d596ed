# src/support_service/infrastructure/database/base_model.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
from sqlalchemy import Enum as SAEnum, text
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def enum_type(enum_cls: type[Enum]) -> SAEnum:
    """Column type storing enum values (not member names) as plain strings."""
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=32,
    )


class BaseModel(SQLModel):
    """
    Base for all database models.

    Example:
        class Contact(BaseModel, TenantMixin, table=True):
            __tablename__ = "contacts"
            phone_number: str = Field(max_length=20, index=True)
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")}
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column_kwargs={"onupdate": utcnow}
    )


class TenantMixin(SQLModel):
    """Scope a row to a tenant."""
    tenant_id: str = Field(
        default="default",
        max_length=64,
        index=True,
        description="Owning tenant",
    )

