"""
Unit tests for behaviour that lives on the table models.

Tests cover:
- Issue status transitions and the events they emit
- Issue assignment events
- Agent capacity bookkeeping
- Notification preferences per priority
"""

from datetime import timedelta
from uuid import uuid4

from support_service.domain.enums import (
    AgentStatus,
    ConversationMode,
    ConversationPriority,
    IssueLinkType,
    IssueStatus,
)
from support_service.domain.events import (
    IssueAssignedEvent,
    IssueCreatedEvent,
    IssueResolvedEvent,
    IssueStatusChangedEvent,
)
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import (
    Agent,
    AgentNotificationPreferences,
    Conversation,
    Issue,
    IssueLink,
)
from support_service.services.issues import event_payload, event_type


def new_issue() -> Issue:
    issue, _ = Issue.create(reference_number="ISS-2025-000001", title="Payment failed")
    return issue


# ============================================================================
# Issue
# ============================================================================


class TestIssue:
    def test_create_starts_new_and_emits_created_event(self):
        issue, event = Issue.create(reference_number="ISS-2025-000007", title="App crashes")

        assert issue.status == IssueStatus.NEW
        assert isinstance(event, IssueCreatedEvent)
        assert event.issue_id == issue.id
        assert event.reference_number == "ISS-2025-000007"

    def test_change_status_emits_status_changed(self):
        issue = new_issue()

        events = issue.change_status(IssueStatus.IN_PROGRESS)

        assert issue.status == IssueStatus.IN_PROGRESS
        assert len(events) == 1
        assert isinstance(events[0], IssueStatusChangedEvent)
        assert events[0].previous_status == "New"
        assert events[0].new_status == "InProgress"

    def test_same_status_emits_nothing(self):
        issue = new_issue()

        assert issue.change_status(IssueStatus.NEW) == []

    def test_closing_also_emits_resolved(self):
        """Resolved and Closed both count as a resolution."""
        issue = new_issue()
        issue.resolution_notes = "Refund issued"

        events = issue.change_status(IssueStatus.CLOSED)

        assert [type(e) for e in events] == [IssueStatusChangedEvent, IssueResolvedEvent]
        assert events[1].status == "Closed"
        assert events[1].resolution_notes == "Refund issued"

    def test_resolve_stores_notes(self):
        issue = new_issue()

        events = issue.resolve("Customer confirmed the fix")

        assert issue.status == IssueStatus.RESOLVED
        assert issue.resolution_notes == "Customer confirmed the fix"
        assert len(events) == 2

    def test_assign_to_emits_only_on_change(self):
        issue = new_issue()
        assignee = uuid4()

        events = issue.assign_to(assignee)

        assert isinstance(events[0], IssueAssignedEvent)
        assert events[0].previous_assignee_id is None
        assert events[0].new_assignee_id == assignee
        assert issue.assign_to(assignee) == []

    def test_event_log_type_and_payload(self):
        issue = new_issue()
        event = issue.change_status(IssueStatus.ON_HOLD)[0]

        payload = event_payload(event)

        assert event_type(event) == "IssueStatusChanged"
        assert payload["previous_status"] == "New"
        assert payload["new_status"] == "OnHold"
        assert "issue_id" not in payload
        assert isinstance(payload["occurred_at"], str)


class TestIssueLink:
    def test_manual_link_has_no_confidence(self):
        link = IssueLink.create_manual_link(uuid4(), uuid4(), IssueLinkType.RELATED, "default")

        assert link.confidence_score is None
        assert link.created_by_system is False

    def test_system_link_keeps_confidence(self):
        link = IssueLink.create_system_link(uuid4(), uuid4(), IssueLinkType.DUPLICATE, 0.92, "default")

        assert link.confidence_score == 0.92
        assert link.created_by_system is True


# ============================================================================
# Agent
# ============================================================================


class TestAgentCapacity:
    def test_available_with_free_slot_can_take_conversations(self):
        agent = Agent(user_id=uuid4(), status=AgentStatus.AVAILABLE, max_concurrent_conversations=2)

        assert agent.is_available
        assert agent.can_take_conversations

    def test_full_agent_is_not_available(self):
        agent = Agent(
            user_id=uuid4(),
            status=AgentStatus.AVAILABLE,
            max_concurrent_conversations=2,
            active_conversation_count=2,
        )

        assert not agent.is_available
        assert agent.workload_percentage == 100.0

    def test_busy_agent_is_not_available(self):
        agent = Agent(user_id=uuid4(), status=AgentStatus.BUSY)

        assert not agent.can_take_conversations

    def test_decrement_never_goes_negative(self):
        agent = Agent(user_id=uuid4(), active_conversation_count=0)

        agent.decrement_load()

        assert agent.active_conversation_count == 0

    def test_increment_then_decrement(self):
        agent = Agent(user_id=uuid4(), active_conversation_count=1)

        agent.increment_load()
        agent.decrement_load()
        agent.decrement_load()

        assert agent.active_conversation_count == 0

    def test_zero_capacity_reports_zero_workload(self):
        agent = Agent(user_id=uuid4(), max_concurrent_conversations=0)

        assert agent.workload_percentage == 0.0


class TestNotificationPreferences:
    def test_priority_switches(self):
        preferences = AgentNotificationPreferences(
            user_id=uuid4(),
            notify_on_standard_priority=False,
            notify_on_high_priority=True,
            notify_on_critical_priority=True,
        )

        assert not preferences.should_notify_for_priority(ConversationPriority.STANDARD)
        assert preferences.should_notify_for_priority(ConversationPriority.HIGH)
        assert preferences.should_notify_for_priority(ConversationPriority.CRITICAL)


class TestConversation:
    def test_escalating_and_human_modes_count_as_escalated(self):
        assert Conversation(reference="a", mode=ConversationMode.ESCALATING).is_escalated
        assert Conversation(reference="b", mode=ConversationMode.HUMAN).is_escalated
        assert not Conversation(reference="c", mode=ConversationMode.BOT).is_escalated

    def test_duration_ends_at_completion(self):
        started = utcnow() - timedelta(hours=2)
        conversation = Conversation(reference="d", created_at=started, completed_at=started + timedelta(minutes=30))

        assert conversation.duration == timedelta(minutes=30)
