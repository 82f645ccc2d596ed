"""
Permission definitions for role-based access control.

Permissions follow a ``resource:operation`` naming convention and are the
building blocks assigned to roles in ``roles.py``.
"""

from enum import Enum, unique


@unique
class Permission(str, Enum):
    """
    System-wide permissions.

    Permission Groups:
        - CONVERSATIONS_*: Reading, answering, assigning and supervising chats
        - AGENTS_*: Agent directory and agent profile management
        - ISSUES_*: Support tickets
        - PREFERENCES_*: The caller's own notification preferences
        - ADMIN_*: Administrative operations
    """

    CONVERSATIONS_READ = "conversations:read"
    CONVERSATIONS_WRITE = "conversations:write"
    CONVERSATIONS_ASSIGN = "conversations:assign"
    CONVERSATIONS_SUPERVISE = "conversations:supervise"

    AGENTS_READ = "agents:read"
    AGENTS_MANAGE = "agents:manage"

    ISSUES_READ = "issues:read"
    ISSUES_WRITE = "issues:write"
    ISSUES_LINK = "issues:link"

    PREFERENCES_WRITE = "preferences:write"

    ADMIN_FULL = "admin:full"


class PermissionGroups:
    CONVERSATIONS_ALL: set[Permission] = {
        Permission.CONVERSATIONS_READ,
        Permission.CONVERSATIONS_WRITE,
        Permission.CONVERSATIONS_ASSIGN,
        Permission.CONVERSATIONS_SUPERVISE,
    }

    CONVERSATIONS_AGENT: set[Permission] = {
        Permission.CONVERSATIONS_READ,
        Permission.CONVERSATIONS_WRITE,
        Permission.CONVERSATIONS_ASSIGN,
    }

    ISSUES_ALL: set[Permission] = {
        Permission.ISSUES_READ,
        Permission.ISSUES_WRITE,
        Permission.ISSUES_LINK,
    }

    ISSUES_WORK: set[Permission] = {
        Permission.ISSUES_READ,
        Permission.ISSUES_WRITE,
    }


def permission_implies(granted: Permission, required: Permission) -> bool:
    """
    Whether ``granted`` covers ``required``.

    >>> permission_implies(Permission.ADMIN_FULL, Permission.ISSUES_READ)
    True
    >>> permission_implies(Permission.ISSUES_READ, Permission.ISSUES_WRITE)
    False
    """
    if granted == Permission.ADMIN_FULL:
        return True
    if granted == required:
        return True
    # Supervising a conversation includes assigning it
    if granted == Permission.CONVERSATIONS_SUPERVISE and required == Permission.CONVERSATIONS_ASSIGN:
        return True
    return False
