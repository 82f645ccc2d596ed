"""
Role-based access control.

Roles are derived from the user's type (and any role names carried in the
token); each role grants a fixed set of ``resource:operation`` permissions.

Quick Start:
    >>> from support_service.auth.rbac import Permission, require_permission
    >>>
    >>> @router.post("/{reference}/assign")
    >>> async def assign(user: UserInfo = Depends(require_permission(Permission.CONVERSATIONS_ASSIGN))):
    ...     ...
"""

from .decorators import PermissionRequired, require_any_permission, require_permission
from .permissions import Permission, PermissionGroups, permission_implies
from .rbac import RBACService, get_rbac_service, set_rbac_service
from .roles import (
    DEFAULT_ROLE_PERMISSIONS,
    Role,
    get_permissions_for_role,
    get_role_from_string,
    get_roles_from_strings,
    role_for_user_type,
    user_type_for_role,
)

__all__ = [
    "Permission",
    "PermissionGroups",
    "permission_implies",
    "Role",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_permissions_for_role",
    "get_role_from_string",
    "get_roles_from_strings",
    "role_for_user_type",
    "user_type_for_role",
    "RBACService",
    "get_rbac_service",
    "set_rbac_service",
    "PermissionRequired",
    "require_permission",
    "require_any_permission",
]
