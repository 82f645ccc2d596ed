"""
Role definitions, role-to-permission mappings and the persona mapping.

Every ``UserType`` corresponds to exactly one role and every role maps back
to exactly one ``UserType``, so a user's persona and their RBAC role never
disagree.
"""

from enum import Enum, unique
from typing import Optional

from support_service.domain.enums import UserType

from .permissions import Permission, PermissionGroups


@unique
class Role(str, Enum):
    PLATFORM_OWNER = "platform_owner"
    TENANT_OWNER = "tenant_owner"
    ISSUE_MANAGER = "issue_manager"
    ISSUE_ASSIGNEE = "issue_assignee"
    CHAT_AGENT = "chat_agent"
    CHAT_SUPERVISOR = "chat_supervisor"
    END_USER = "end_user"
    API_CONSUMER = "api_consumer"


USER_TYPE_TO_ROLE: dict[UserType, Role] = {
    UserType.PLATFORM_OWNER: Role.PLATFORM_OWNER,
    UserType.TENANT_OWNER: Role.TENANT_OWNER,
    UserType.ISSUE_MANAGER: Role.ISSUE_MANAGER,
    UserType.ISSUE_ASSIGNEE: Role.ISSUE_ASSIGNEE,
    UserType.CHAT_AGENT: Role.CHAT_AGENT,
    UserType.CHAT_SUPERVISOR: Role.CHAT_SUPERVISOR,
    UserType.END_USER: Role.END_USER,
    UserType.API_CONSUMER: Role.API_CONSUMER,
}

ROLE_TO_USER_TYPE: dict[Role, UserType] = {role: user_type for user_type, role in USER_TYPE_TO_ROLE.items()}


DEFAULT_ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    Role.PLATFORM_OWNER: {Permission.ADMIN_FULL},
    Role.TENANT_OWNER: {
        *PermissionGroups.CONVERSATIONS_ALL,
        *PermissionGroups.ISSUES_ALL,
        Permission.AGENTS_READ,
        Permission.AGENTS_MANAGE,
        Permission.PREFERENCES_WRITE,
    },
    Role.ISSUE_MANAGER: {
        *PermissionGroups.ISSUES_ALL,
        Permission.CONVERSATIONS_READ,
        Permission.AGENTS_READ,
    },
    Role.ISSUE_ASSIGNEE: {
        *PermissionGroups.ISSUES_WORK,
        Permission.CONVERSATIONS_READ,
    },
    Role.CHAT_AGENT: {
        *PermissionGroups.CONVERSATIONS_AGENT,
        Permission.AGENTS_READ,
        Permission.ISSUES_READ,
        Permission.PREFERENCES_WRITE,
    },
    Role.CHAT_SUPERVISOR: {
        *PermissionGroups.CONVERSATIONS_ALL,
        Permission.AGENTS_READ,
        Permission.AGENTS_MANAGE,
        Permission.ISSUES_READ,
        Permission.PREFERENCES_WRITE,
    },
    Role.END_USER: set(),
    Role.API_CONSUMER: {
        Permission.CONVERSATIONS_READ,
        Permission.CONVERSATIONS_WRITE,
        Permission.ISSUES_WRITE,
    },
}


def role_for_user_type(user_type: UserType) -> Role:
    return USER_TYPE_TO_ROLE[user_type]


def user_type_for_role(role: Role) -> UserType:
    return ROLE_TO_USER_TYPE[role]


def get_permissions_for_role(role: Role) -> set[Permission]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, set()))


def get_role_from_string(role_str: str) -> Optional[Role]:
    """
    Case-insensitive role lookup.

    >>> get_role_from_string("CHAT_AGENT")
    <Role.CHAT_AGENT: 'chat_agent'>
    >>> get_role_from_string("invalid") is None
    True
    """
    try:
        return Role(role_str.lower())
    except (ValueError, AttributeError):
        return None


def get_roles_from_strings(role_strings: list[str]) -> set[Role]:
    """Convert role names to roles; unknown names are skipped."""
    roles: set[Role] = set()
    for role_str in role_strings:
        role = get_role_from_string(role_str)
        if role:
            roles.add(role)
    return roles
