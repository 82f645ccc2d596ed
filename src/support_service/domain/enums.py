"""
Domain enumerations shared by models, services and API schemas.

Values are the member names so they round-trip unchanged through JSON,
the database and query strings.
"""

from enum import Enum, unique


@unique
class AgentStatus(str, Enum):
    """Presence of a support agent."""

    OFFLINE = "Offline"
    AVAILABLE = "Available"
    BUSY = "Busy"
    BREAK = "Break"
    TRAINING = "Training"


@unique
class ConversationMode(str, Enum):
    """Who is currently answering the customer."""

    BOT = "Bot"
    ESCALATING = "Escalating"
    HUMAN = "Human"
    HANDING_BACK_TO_BOT = "HandingBackToBot"


@unique
class ConversationStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ABANDONED = "Abandoned"
    ARCHIVED = "Archived"


@unique
class HandoffStatus(str, Enum):
    INITIATED = "Initiated"
    ACCEPTED = "Accepted"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


@unique
class HandoffType(str, Enum):
    BOT_TO_HUMAN = "BotToHuman"
    HUMAN_TO_BOT = "HumanToBot"
    AGENT_TO_AGENT = "AgentToAgent"
    ESCALATE_TO_SUPERVISOR = "EscalateToSupervisor"


@unique
class ParticipantType(str, Enum):
    CUSTOMER = "Customer"
    BOT = "Bot"
    AGENT = "Agent"
    SUPERVISOR = "Supervisor"


@unique
class IssueCategory(str, Enum):
    TECHNICAL = "Technical"
    BILLING = "Billing"
    GENERAL = "General"
    FEATURE = "Feature"


@unique
class IssuePriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


@unique
class IssueStatus(str, Enum):
    NEW = "New"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    ON_HOLD = "OnHold"


@unique
class IssueLinkType(str, Enum):
    DUPLICATE = "Duplicate"
    RELATED = "Related"
    BLOCKS = "Blocks"
    CAUSED_BY = "CausedBy"
    PART_OF = "PartOf"


@unique
class ResolutionCategory(str, Enum):
    """How an escalated conversation was closed by the agent."""

    RESOLVED = "Resolved"
    ESCALATED_TO_TECHNICAL_TEAM = "EscalatedToTechnicalTeam"
    INFORMATION_PROVIDED = "InformationProvided"
    CUSTOMER_NO_RESPONSE = "CustomerNoResponse"
    DUPLICATE_ISSUE = "DuplicateIssue"
    CANNOT_REPRODUCE = "CannotReproduce"


@unique
class UserType(str, Enum):
    """
    Persona of a platform user.

    Each persona maps to exactly one RBAC role, see
    ``support_service.auth.rbac.roles.role_for_user_type``.
    """

    PLATFORM_OWNER = "PlatformOwner"
    TENANT_OWNER = "TenantOwner"
    ISSUE_MANAGER = "IssueManager"
    ISSUE_ASSIGNEE = "IssueAssignee"
    CHAT_AGENT = "ChatAgent"
    CHAT_SUPERVISOR = "ChatSupervisor"
    END_USER = "EndUser"
    API_CONSUMER = "ApiConsumer"


@unique
class AssignmentStrategy(str, Enum):
    ROUND_ROBIN = "RoundRobin"
    LEAST_LOADED = "LeastLoaded"
    RANDOM = "Random"


class ConversationPriority:
    """Integer priorities stored on conversations."""

    STANDARD = 1
    HIGH = 2
    CRITICAL = 3


def parse_enum(enum_cls: type[Enum], value: str | None, default: Enum | None = None):
    """
    Case-insensitive lookup of an enum member by value or name.

    Returns ``default`` when the value is empty or unknown.
    """
    if not value:
        return default
    needle = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == needle or member.name.lower() == needle:
            return member
    return default
