"""
Pydantic models for access tokens and the authenticated user.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from support_service.domain.enums import UserType


class TokenPayload(BaseModel):
    """
    Decoded access token claims.

    ``sub`` is the user id; ``roles`` holds RBAC role names and
    ``user_type`` the persona the roles were derived from.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    sub: str = Field(..., min_length=1, description="Subject identifier (user ID)")
    exp: int = Field(..., gt=0, description="Expiration time as Unix timestamp")
    iat: int = Field(..., gt=0, description="Issued at time as Unix timestamp")
    iss: Optional[str] = Field(default=None, description="Issuer")
    roles: list[str] = Field(default_factory=list, description="RBAC role names")
    tenant_id: Optional[str] = Field(default=None, description="Tenant identifier")
    user_type: Optional[UserType] = Field(default=None, description="User persona")
    name: Optional[str] = Field(default=None, description="User display name")
    email: Optional[str] = Field(default=None, description="User email address")

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc).timestamp() >= self.exp

    @property
    def expires_in(self) -> int:
        """Seconds until the token expires (negative if already expired)."""
        return int(self.exp - datetime.now(timezone.utc).timestamp())


class UserInfo(BaseModel):
    """
    Authenticated caller, as seen by route handlers and services.

    Example:
        >>> user = UserInfo(id=uuid4(), tenant_id="default", roles=["chat_agent"])
        >>> user.has_role("chat_agent")
        True
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(..., description="User id")
    tenant_id: str = Field(default="default", description="Tenant the user belongs to")
    name: Optional[str] = Field(default=None, description="Display name")
    email: Optional[str] = Field(default=None)
    roles: list[str] = Field(default_factory=list, description="RBAC role names")
    user_type: Optional[UserType] = Field(default=None)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: list[str]) -> bool:
        return any(role in self.roles for role in roles)

    @classmethod
    def from_token(cls, payload: TokenPayload, default_tenant: str = "default") -> "UserInfo":
        return cls(
            id=UUID(payload.sub),
            tenant_id=payload.tenant_id or default_tenant,
            name=payload.name,
            email=payload.email,
            roles=payload.roles,
            user_type=payload.user_type,
        )
