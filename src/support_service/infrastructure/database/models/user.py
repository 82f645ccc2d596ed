"""
SQLModel model for platform users.

Users are the people behind every other record: chat agents, supervisors,
issue managers and tenant owners. Authorization is derived from the
persona stored in ``user_type`` (see ``support_service.auth.rbac.roles``).
"""

from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field

from support_service.domain.enums import UserType
from support_service.infrastructure.database.base_model import BaseModel, TenantMixin, enum_type


class User(BaseModel, TenantMixin, table=True):
    """
    Platform user.

    Attributes:
        id: Unique identifier (UUID), also the ``sub`` claim of access tokens
        user_name: Login name (unique)
        display_name: Name shown to customers and colleagues
        email: Contact address
        user_type: Persona used to derive the RBAC role
        is_active: Whether the account may sign in
        tenant_id: Owning tenant

    Indexes:
        - user_name: Fast lookup by login (unique)
        - tenant_id + user_type: Listing staff of a tenant by persona

    Example:
        >>> user = User(user_name="jdoe", display_name="Jane Doe", user_type=UserType.CHAT_AGENT)
        >>> user.effective_name
        'Jane Doe'
    """

    __tablename__ = "users"

    user_name: str = Field(
        nullable=False,
        unique=True,
        index=True,
        max_length=100,
        description="Login name (unique)",
        sa_column_kwargs={"comment": "Login name - unique across tenants"}
    )

    display_name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Name shown in the agent console",
        sa_column_kwargs={"comment": "Display name, falls back to user_name"}
    )

    email: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Contact e-mail address",
    )

    user_type: UserType = Field(
        default=UserType.END_USER,
        sa_type=enum_type(UserType),
        nullable=False,
        description="Persona of the user",
        sa_column_kwargs={"comment": "Persona that determines the RBAC role"}
    )

    is_active: bool = Field(
        default=True,
        nullable=False,
        description="Whether the user account is active",
    )

    __table_args__ = (
        Index("ix_users_tenant_id_user_type", "tenant_id", "user_type"),
    )

    @property
    def effective_name(self) -> str:
        """Display name, falling back to the login name."""
        return self.display_name or self.user_name
