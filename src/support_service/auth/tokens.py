"""
HS256 access tokens issued and verified with PyJWT.

Usage:
    token = create_access_token(user_id, roles=["chat_agent"], tenant_id="default")
    payload = decode_access_token(token)
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt

from support_service.auth.schemas import TokenPayload
from support_service.config.settings import Settings, get_settings
from support_service.domain.enums import UserType
from support_service.domain.exceptions import TokenExpired, TokenInvalid


def _secret(settings: Settings) -> str:
    if settings.secret_key is None:
        raise TokenInvalid("Token signing key is not configured")
    return settings.secret_key.get_secret_value()


def create_access_token(
    user_id: UUID,
    roles: Optional[list[str]] = None,
    tenant_id: Optional[str] = None,
    user_type: Optional[UserType] = None,
    name: Optional[str] = None,
    expires_minutes: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes or settings.jwt_access_token_expire_minutes)

    claims = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
        "iss": settings.jwt_issuer,
        "roles": roles or [],
        "tenant_id": tenant_id or settings.default_tenant_id,
    }
    if user_type is not None:
        claims["user_type"] = user_type.value
    if name:
        claims["name"] = name

    return jwt.encode(claims, _secret(settings), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> TokenPayload:
    """
    Verify signature, expiry and issuer of ``token``.

    Raises:
        TokenExpired: The token is past its ``exp`` claim
        TokenInvalid: Anything else is wrong with it
    """
    settings = settings or get_settings()
    try:
        claims = jwt.decode(
            token,
            _secret(settings),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired() from e
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Invalid token: {e}") from e

    try:
        payload = TokenPayload(**claims)
        UUID(payload.sub)
    except ValueError as e:
        raise TokenInvalid("Token subject is not a valid user id") from e
    return payload
