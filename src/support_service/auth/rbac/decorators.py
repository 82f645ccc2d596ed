"""
FastAPI dependencies for permission-based access control.

Usage:
    >>> @router.post("/{reference}/assign")
    >>> async def assign(user: UserInfo = Depends(require_permission(Permission.CONVERSATIONS_ASSIGN))):
    ...     ...
"""

import logging
from typing import Optional

from fastapi import Depends

from support_service.auth.dependencies import get_current_user
from support_service.auth.schemas import UserInfo
from support_service.domain.exceptions import InsufficientPermissions

from .permissions import Permission
from .rbac import RBACService, get_rbac_service

logger = logging.getLogger(__name__)


class PermissionRequired:
    """
    Dependency that resolves to the current user when they hold the permissions.

    ``require_all=False`` accepts any one of them.
    """

    def __init__(
        self,
        required_permissions: list[Permission],
        require_all: bool = True,
        rbac_service: Optional[RBACService] = None,
    ):
        self.required_permissions = required_permissions
        self.require_all = require_all
        self._rbac_service = rbac_service

    @property
    def rbac_service(self) -> RBACService:
        return self._rbac_service or get_rbac_service()

    async def __call__(self, user: UserInfo = Depends(get_current_user)) -> UserInfo:
        if self.require_all:
            allowed = self.rbac_service.has_all_permissions(user, self.required_permissions)
        else:
            allowed = self.rbac_service.has_any_permission(user, self.required_permissions)

        if not allowed:
            required = [p.value for p in self.required_permissions]
            logger.warning(
                "Access denied",
                extra={"user_id": str(user.id), "required_permissions": required},
            )
            raise InsufficientPermissions(
                details={"required_permissions": required},
            )
        return user


def require_permission(*permissions: Permission) -> PermissionRequired:
    return PermissionRequired(list(permissions), require_all=True)


def require_any_permission(*permissions: Permission) -> PermissionRequired:
    return PermissionRequired(list(permissions), require_all=False)
