"""
RBAC service for permission checks.

A user's roles come from the ``roles`` claim of their token plus the role of
their persona (``user_type``).
"""

import logging
from typing import Optional

from support_service.auth.schemas import UserInfo

from .permissions import Permission, permission_implies
from .roles import Role, get_permissions_for_role, get_roles_from_strings, role_for_user_type

logger = logging.getLogger(__name__)


class RBACService:
    def get_user_roles(self, user: UserInfo) -> set[Role]:
        roles = get_roles_from_strings(user.roles)
        if user.user_type is not None:
            roles.add(role_for_user_type(user.user_type))
        return roles

    def get_user_permissions(self, user: UserInfo) -> set[Permission]:
        permissions: set[Permission] = set()
        for role in self.get_user_roles(user):
            permissions.update(get_permissions_for_role(role))
        return permissions

    def has_permission(self, user: UserInfo, permission: Permission) -> bool:
        """
        Whether ``user`` holds ``permission`` directly or through an implying one.

        Example:
            >>> rbac = RBACService()
            >>> rbac.has_permission(agent_user, Permission.CONVERSATIONS_WRITE)
            True
        """
        granted = self.get_user_permissions(user)
        allowed = any(permission_implies(g, permission) for g in granted)
        if not allowed:
            logger.debug(
                "Permission denied",
                extra={"user_id": str(user.id), "permission": permission.value},
            )
        return allowed

    def has_all_permissions(self, user: UserInfo, permissions: list[Permission]) -> bool:
        return all(self.has_permission(user, p) for p in permissions)

    def has_any_permission(self, user: UserInfo, permissions: list[Permission]) -> bool:
        return any(self.has_permission(user, p) for p in permissions)


_rbac_service: Optional[RBACService] = None


def get_rbac_service() -> RBACService:
    global _rbac_service
    if _rbac_service is None:
        _rbac_service = RBACService()
    return _rbac_service


def set_rbac_service(service: RBACService) -> None:
    """Replace the global service (tests)."""
    global _rbac_service
    _rbac_service = service
