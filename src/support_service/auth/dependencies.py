"""
FastAPI authentication dependencies.

Usage:
    >>> @router.get("/conversations/mine/active")
    >>> async def my_conversations(user: UserInfo = Depends(get_current_user)):
    ...     return {"user_id": str(user.id)}
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from support_service.auth.schemas import UserInfo
from support_service.auth.tokens import decode_access_token
from support_service.config.settings import get_settings
from support_service.domain.exceptions import AuthError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[UserInfo]:
    """Authenticated user, or None when no bearer token was sent."""
    if credentials is None or not credentials.credentials:
        return None

    payload = decode_access_token(credentials.credentials)
    user = UserInfo.from_token(payload, default_tenant=get_settings().default_tenant_id)
    request.state.user = user
    return user


async def get_current_user(user: Optional[UserInfo] = Depends(get_optional_user)) -> UserInfo:
    """
    Authenticated user from the ``Authorization: Bearer`` header.

    Raises:
        AuthError: No token was provided
        TokenExpired / TokenInvalid: The token failed verification
    """
    if user is None:
        raise AuthError("Authentication required")
    return user
