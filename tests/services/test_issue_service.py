"""
Tests for issue intake, updates and links.

Tests cover:
- Intake with contact lookup, vocabulary fallbacks and attachments
- Updates and the audit events they record
- Linking rules: existence, tenants, duplicates and cycles
- WhatsApp messages to the reporter on status changes and resolutions
- Unlinking and the cached issue details
- Filtered listing
- Dashboard, performance and recent activity statistics
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from support_service.api.schemas.errors import ErrorCode
from support_service.api.schemas.issues import (
    AttachmentData,
    IssueIntakeRequest,
    IssueUpdateRequest,
    LinkIssuesRequest,
    UnlinkIssuesRequest,
)
from support_service.auth.schemas import UserInfo
from support_service.domain import error_messages as msg
from support_service.domain.enums import IssueCategory, IssueLinkType, IssuePriority, IssueStatus
from support_service.infrastructure.cache import flush_invalidations
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.repositories import (
    AttachmentRepository,
    ContactRepository,
    EventLogRepository,
    IssueRepository,
)
from support_service.services.issues import IssueService
from tests.factories import IssueFactory

PHONE = "+447700900123"


@pytest.fixture
def whatsapp_client():
    client = AsyncMock()
    client.send_text_message.return_value = True
    return client


@pytest.fixture
def service(db_session, cache, test_settings, whatsapp_client):
    return IssueService(db_session, cache, settings=test_settings, whatsapp=whatsapp_client)


@pytest.fixture
def user():
    return UserInfo(id=uuid4(), name="Intake Bot", roles=["api_consumer"])


def intake_request(**overrides) -> IssueIntakeRequest:
    data = {
        "reporter_phone": PHONE,
        "reporter_name": "Ada Lovelace",
        "channel": "WhatsApp",
        "category": "Technical",
        "product": "Mobile App",
        "severity": "High",
        "priority": "High",
        "summary": "App crashes on login",
        "description": "The app closes right after entering the password.",
    }
    data.update(overrides)
    return IssueIntakeRequest(**data)


async def event_types(db_session, issue_id) -> list[str]:
    return [e.type for e in await EventLogRepository(db_session).list_for_issue(issue_id)]


# ============================================================================
# Intake
# ============================================================================


class TestIntake:
    async def test_creates_issue_contact_and_event(self, service, db_session, user):
        result = await service.intake(intake_request(), user)

        assert result.succeeded
        issue = await IssueRepository(db_session).get(result.data)
        year = datetime.now(timezone.utc).year
        assert issue.reference_number == f"ISS-{year}-000001"
        assert issue.status == IssueStatus.NEW
        assert issue.category == IssueCategory.TECHNICAL
        assert issue.priority == IssuePriority.HIGH
        assert issue.title == "App crashes on login"
        assert issue.channel == "WhatsApp"

        contact = await ContactRepository(db_session).get_by_phone(PHONE, issue.tenant_id)
        assert contact.id == issue.reporter_contact_id
        assert contact.name == "Ada Lovelace"

        events = await EventLogRepository(db_session).list_for_issue(issue.id)
        assert [e.type for e in events] == ["IssueCreated"]
        assert events[0].payload["reference_number"] == issue.reference_number
        assert events[0].created_by == str(user.id)

    async def test_second_intake_reuses_contact(self, service, db_session):
        first = await service.intake(intake_request())
        second = await service.intake(intake_request(reporter_name="Ada King"))

        first_issue = await IssueRepository(db_session).get(first.data)
        second_issue = await IssueRepository(db_session).get(second.data)
        assert first_issue.reporter_contact_id == second_issue.reporter_contact_id
        assert second_issue.reference_number.endswith("000002")

        contact = await ContactRepository(db_session).get(second_issue.reporter_contact_id)
        assert contact.name == "Ada King"

    @pytest.mark.parametrize(
        "category,priority,expected_category,expected_priority",
        [
            ("Policy", "Urgent", IssueCategory.GENERAL, IssuePriority.MEDIUM),
            ("Claims", "Low", IssueCategory.GENERAL, IssuePriority.LOW),
            ("Account", "Medium", IssueCategory.GENERAL, IssuePriority.MEDIUM),
            ("Billing", "High", IssueCategory.BILLING, IssuePriority.HIGH),
        ],
    )
    async def test_vocabulary_fallbacks(
        self, service, db_session, category, priority, expected_category, expected_priority
    ):
        result = await service.intake(intake_request(category=category, priority=priority))

        issue = await IssueRepository(db_session).get(result.data)
        assert issue.category == expected_category
        assert issue.priority == expected_priority

    async def test_attachments_are_stored_pending_scan(self, service, db_session):
        attachment = AttachmentData(
            name="crash.png", url="https://files.example.com/a.png", content_type="image/png", size=2048
        )
        request = intake_request(attachments=[attachment])

        result = await service.intake(request)

        attachments = await AttachmentRepository(db_session).list_for_issue(result.data)
        assert len(attachments) == 1
        assert attachments[0].scan_status == "Pending"
        assert attachments[0].size_bytes == 2048


# ============================================================================
# Updates
# ============================================================================


class TestUpdateIssue:
    async def test_field_changes_are_logged(self, service, db_session):
        issue = await IssueFactory.create_async(db_session)

        result = await service.update_issue(
            issue.id, IssueUpdateRequest(title="New title", priority=IssuePriority.HIGH)
        )

        assert result.data.title == "New title"
        events = await EventLogRepository(db_session).list_for_issue(issue.id)
        assert events[0].type == "IssueUpdated"
        assert events[0].payload == {"changed_fields": ["title", "priority"], "priority": "High"}

    async def test_resolving_records_status_and_resolution(self, service, db_session, user):
        issue = await IssueFactory.create_async(db_session)

        await service.update_issue(
            issue.id,
            IssueUpdateRequest(status=IssueStatus.RESOLVED, resolution_notes="Patched in 2.4.1"),
            user,
        )

        assert issue.status == IssueStatus.RESOLVED
        assert issue.resolution_notes == "Patched in 2.4.1"
        assert sorted(await event_types(db_session, issue.id)) == ["IssueResolved", "IssueStatusChanged"]

    async def test_assignment_event(self, service, db_session):
        issue = await IssueFactory.create_async(db_session)
        assignee = uuid4()

        await service.update_issue(issue.id, IssueUpdateRequest(assigned_user_id=assignee))

        assert issue.assigned_user_id == assignee
        assert await event_types(db_session, issue.id) == ["IssueAssigned"]

    async def test_unchanged_values_log_nothing(self, service, db_session):
        issue = await IssueFactory.create_async(db_session)

        await service.update_issue(issue.id, IssueUpdateRequest(status=IssueStatus.NEW, title=issue.title))

        assert await event_types(db_session, issue.id) == []

    async def test_unknown_issue(self, service):
        result = await service.update_issue(uuid4(), IssueUpdateRequest(title="x"))

        assert result.error_code == ErrorCode.ISSUE_NOT_FOUND


class TestReporterNotifications:
    async def test_status_change_is_sent_to_reporter(self, service, db_session, whatsapp_client):
        issue = await IssueFactory.create_async(db_session, reporter_phone=PHONE, title="Card declined")

        await service.update_issue(issue.id, IssueUpdateRequest(status=IssueStatus.IN_PROGRESS))

        whatsapp_client.send_text_message.assert_awaited_once()
        to, text = whatsapp_client.send_text_message.await_args.args
        assert to == PHONE
        assert text.startswith("🔄 Status Update for your issue")
        assert f"📋 Reference: {issue.reference_number}" in text
        assert "📝 Title: Card declined" in text
        assert "Status changed from: New → InProgress" in text

    async def test_resolution_sends_status_and_resolution_messages(self, service, db_session, whatsapp_client):
        issue = await IssueFactory.create_async(db_session, reporter_phone=PHONE)

        await service.update_issue(
            issue.id, IssueUpdateRequest(status=IssueStatus.RESOLVED, resolution_notes="Patched in 2.4.1")
        )

        texts = [call.args[1] for call in whatsapp_client.send_text_message.await_args_list]
        assert len(texts) == 2
        assert texts[0].startswith("✅ Status Update")
        assert texts[1].startswith("🎉 Great news! Your issue has been resolved")
        assert "💬 Resolution notes:\nPatched in 2.4.1" in texts[1]

    async def test_resolution_without_notes(self, service, db_session, whatsapp_client):
        issue = await IssueFactory.create_async(db_session, reporter_phone=PHONE)

        await service.update_issue(issue.id, IssueUpdateRequest(status=IssueStatus.CLOSED))

        resolved = whatsapp_client.send_text_message.await_args_list[1].args[1]
        assert "Resolution notes" not in resolved
        assert resolved.endswith("Thank you for your patience!")

    async def test_field_changes_send_nothing(self, service, db_session, whatsapp_client):
        issue = await IssueFactory.create_async(db_session, reporter_phone=PHONE)

        await service.update_issue(issue.id, IssueUpdateRequest(title="Renamed", priority=IssuePriority.HIGH))

        whatsapp_client.send_text_message.assert_not_awaited()

    async def test_issue_without_phone_is_skipped(self, service, db_session, whatsapp_client):
        issue = await IssueFactory.create_async(db_session, reporter_phone=None)

        result = await service.update_issue(issue.id, IssueUpdateRequest(status=IssueStatus.ON_HOLD))

        assert result.succeeded
        whatsapp_client.send_text_message.assert_not_awaited()

    async def test_send_failure_does_not_fail_update(self, service, db_session, whatsapp_client):
        whatsapp_client.send_text_message.side_effect = RuntimeError("Graph API down")
        issue = await IssueFactory.create_async(db_session, reporter_phone=PHONE)

        result = await service.update_issue(issue.id, IssueUpdateRequest(status=IssueStatus.IN_PROGRESS))

        assert result.succeeded
        assert result.data.status == IssueStatus.IN_PROGRESS



# ============================================================================
# Links
# ============================================================================


class TestLinkIssues:
    async def test_manual_link_logged_on_both_issues(self, service, db_session, user):
        parent = await IssueFactory.create_async(db_session)
        child = await IssueFactory.create_async(db_session)

        result = await service.link_issues(
            LinkIssuesRequest(parent_issue_id=parent.id, child_issue_id=child.id, link_type=IssueLinkType.DUPLICATE),
            user,
        )

        assert result.succeeded
        assert await event_types(db_session, parent.id) == ["IssueLinked"]
        assert await event_types(db_session, child.id) == ["IssueLinked"]
        event = (await EventLogRepository(db_session).list_for_issue(parent.id))[0]
        assert event.payload["description"] == f"Linked to issue {child.reference_number} as Duplicate"
        assert event.payload["metadata"]["user_id"] == str(user.id)

    async def test_system_link_keeps_confidence(self, service, db_session):
        parent = await IssueFactory.create_async(db_session)
        child = await IssueFactory.create_async(db_session)

        result = await service.link_issues(
            LinkIssuesRequest(
                parent_issue_id=parent.id,
                child_issue_id=child.id,
                created_by_system=True,
                confidence_score=0.87,
            )
        )

        link = await service.links.get(result.data)
        assert link.created_by_system is True
        assert link.confidence_score == 0.87

    async def test_missing_parent_or_child(self, service, db_session):
        issue = await IssueFactory.create_async(db_session)

        no_parent = await service.link_issues(LinkIssuesRequest(parent_issue_id=uuid4(), child_issue_id=issue.id))
        no_child = await service.link_issues(LinkIssuesRequest(parent_issue_id=issue.id, child_issue_id=uuid4()))

        assert no_parent.error_message == msg.PARENT_ISSUE_NOT_FOUND
        assert no_child.error_message == msg.CHILD_ISSUE_NOT_FOUND
        assert no_child.error_code == ErrorCode.ISSUE_NOT_FOUND

    async def test_issues_of_different_tenants(self, service, db_session):
        parent = await IssueFactory.create_async(db_session)
        child = await IssueFactory.create_async(db_session, tenant_id="acme")

        result = await service.link_issues(LinkIssuesRequest(parent_issue_id=parent.id, child_issue_id=child.id))

        assert result.error_message == msg.ISSUES_DIFFERENT_TENANTS
        assert result.error_code is None

    async def test_existing_link_in_either_direction(self, service, db_session):
        first = await IssueFactory.create_async(db_session)
        second = await IssueFactory.create_async(db_session)
        await service.link_issues(LinkIssuesRequest(parent_issue_id=first.id, child_issue_id=second.id))

        again = await service.link_issues(LinkIssuesRequest(parent_issue_id=first.id, child_issue_id=second.id))
        reversed_ = await service.link_issues(LinkIssuesRequest(parent_issue_id=second.id, child_issue_id=first.id))

        assert again.error_message == msg.ISSUE_LINK_EXISTS
        assert reversed_.error_message == msg.ISSUE_LINK_EXISTS
        assert reversed_.error_code == ErrorCode.CONFLICT

    async def test_cycle_through_intermediate_issue(self, service, db_session):
        a, b, c = [await IssueFactory.create_async(db_session) for _ in range(3)]
        await service.link_issues(LinkIssuesRequest(parent_issue_id=a.id, child_issue_id=b.id))
        await service.link_issues(LinkIssuesRequest(parent_issue_id=b.id, child_issue_id=c.id))

        result = await service.link_issues(LinkIssuesRequest(parent_issue_id=c.id, child_issue_id=a.id))

        assert result.error_message == msg.ISSUE_LINK_CIRCULAR
        assert result.error_code == ErrorCode.CONFLICT


class TestUnlinkIssues:
    async def test_removes_link_and_logs_both_sides(self, service, db_session, user):
        parent = await IssueFactory.create_async(db_session)
        child = await IssueFactory.create_async(db_session)
        link_id = (
            await service.link_issues(LinkIssuesRequest(parent_issue_id=parent.id, child_issue_id=child.id))
        ).data

        result = await service.unlink_issues(link_id, UnlinkIssuesRequest(reason="Not related after all"), user)

        assert result.data is True
        assert await service.links.get(link_id) is None
        assert await event_types(db_session, parent.id) == ["IssueLinked", "IssueUnlinked"]
        unlinked = (await EventLogRepository(db_session).list_for_issue(child.id))[-1]
        assert unlinked.payload["metadata"]["reason"] == "Not related after all"
        assert unlinked.payload["description"] == f"Unlinked from issue {parent.reference_number} (Related)"

    async def test_unknown_link(self, service):
        result = await service.unlink_issues(uuid4())

        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.error_message == msg.ISSUE_LINK_NOT_FOUND


# ============================================================================
# Queries
# ============================================================================


class TestGetIssue:
    async def test_details_include_links_and_events(self, service, db_session):
        parent = await IssueFactory.create_async(db_session)
        child = await IssueFactory.create_async(db_session)
        await service.link_issues(LinkIssuesRequest(parent_issue_id=parent.id, child_issue_id=child.id))

        result = await service.get_issue(parent.id)

        assert result.data.issue.reference_number == parent.reference_number
        assert [link.child_issue_id for link in result.data.links] == [child.id]
        assert [e.type for e in result.data.events] == ["IssueLinked"]

    async def test_details_are_refreshed_after_update(self, service, db_session):
        issue = await IssueFactory.create_async(db_session)
        await service.get_issue(issue.id)

        await service.update_issue(issue.id, IssueUpdateRequest(title="Renamed"))
        await db_session.commit()
        await flush_invalidations(db_session)
        result = await service.get_issue(issue.id)

        assert result.data.issue.title == "Renamed"

    async def test_unknown_issue(self, service):
        result = await service.get_issue(uuid4())

        assert result.error_code == ErrorCode.ISSUE_NOT_FOUND


class TestListIssues:
    async def test_filters_and_search(self, service, db_session):
        await IssueFactory.create_async(db_session, title="Card declined", category=IssueCategory.BILLING)
        await IssueFactory.create_async(db_session, title="App crash", status=IssueStatus.RESOLVED)
        await IssueFactory.create_async(db_session, title="Login loop")

        billing = await service.list_issues(category=IssueCategory.BILLING)
        resolved = await service.list_issues(status=IssueStatus.RESOLVED)
        searched = await service.list_issues(search="loop")

        assert [i.title for i in billing.data.items] == ["Card declined"]
        assert [i.title for i in resolved.data.items] == ["App crash"]
        assert [i.title for i in searched.data.items] == ["Login loop"]

    async def test_pagination(self, service, db_session):
        await IssueFactory.create_batch_async(db_session, 5)

        result = await service.list_issues(page=2, page_size=2)

        assert len(result.data.items) == 2
        assert result.data.pagination.total == 5
        assert result.data.pagination.total_pages == 3


# ============================================================================
# Statistics
# ============================================================================


class TestDashboardMetrics:
    async def test_kpis_distributions_and_trend(self, service, db_session):
        now = utcnow()
        await IssueFactory.create_async(
            db_session, priority=IssuePriority.CRITICAL, channel="WhatsApp", created_at=now - timedelta(hours=2)
        )
        await IssueFactory.create_async(
            db_session,
            status=IssueStatus.RESOLVED,
            created_at=now - timedelta(hours=50),
            updated_at=now - timedelta(hours=2),
        )
        await IssueFactory.create_async(
            db_session,
            priority=IssuePriority.CRITICAL,
            status=IssueStatus.CLOSED,
            created_at=now - timedelta(days=5),
            updated_at=now - timedelta(days=5) + timedelta(hours=30),
        )
        await IssueFactory.create_async(db_session, created_at=now - timedelta(days=40))

        metrics = await service.dashboard_metrics()

        assert metrics.total_open_issues == 1
        assert metrics.critical_issues == 1
        assert metrics.new_issues_last_24_hours == 1
        assert metrics.resolved_last_24_hours == 1
        assert metrics.average_resolution_time_hours == pytest.approx(39.0)
        assert metrics.sla_compliance_percentage == pytest.approx(50.0)
        assert metrics.sla_compliance_formatted == "50.0%"
        assert metrics.trend_percentage == pytest.approx(200.0)
        assert metrics.trend_direction == "up"
        assert metrics.status_distribution == {"New": 1, "Resolved": 1, "Closed": 1}
        assert metrics.priority_distribution == {"Critical": 1}
        assert metrics.category_distribution == {"Technical": 3}
        assert metrics.channel_distribution == {"WhatsApp": 1}
        assert metrics.data_period_days == 30

    async def test_nothing_resolved_is_fully_compliant(self, service):
        metrics = await service.dashboard_metrics()

        assert metrics.sla_compliance_percentage == 100.0
        assert metrics.trend_direction == "stable"
        assert metrics.average_resolution_time_formatted == "0.0h"


class TestPerformanceStats:
    async def test_series_percentiles_and_breakdowns(self, service, db_session):
        now = utcnow()
        created = now - timedelta(days=1)
        for hours in (1, 2, 3, 4):
            await IssueFactory.create_async(
                db_session,
                status=IssueStatus.RESOLVED,
                channel="WhatsApp",
                created_at=created,
                updated_at=created + timedelta(hours=hours),
            )
        await IssueFactory.create_async(db_session, category=IssueCategory.BILLING, created_at=now)
        await IssueFactory.create_async(db_session, created_at=now - timedelta(days=10))

        stats = await service.performance_stats(days=7)

        assert len(stats.daily_volume) == 7
        assert stats.daily_volume[-1].label == now.strftime("%b %d")
        assert sum(point.value for point in stats.daily_volume) == 5
        assert [point.label for point in stats.hourly_distribution][:2] == ["00:00", "01:00"]
        assert stats.hourly_distribution[created.hour].value >= 4
        assert stats.total_resolved_issues == 4
        assert stats.median_resolution_time_hours == pytest.approx(2.0)
        assert stats.p90_resolution_time_hours == pytest.approx(3.6)
        assert stats.p95_resolution_time_hours == pytest.approx(3.8)

        categories = {group.name: group for group in stats.category_performance}
        assert categories["Technical"].total == 4
        assert categories["Technical"].resolved == 4
        assert categories["Technical"].average_resolution_hours == pytest.approx(2.5)
        assert categories["Billing"].resolved == 0
        assert [group.name for group in stats.channel_performance] == ["WhatsApp"]
        assert stats.period_days == 7


class TestRecentActivity:
    async def test_creations_and_changes_newest_first(self, service, db_session):
        issue = await IssueFactory.create_async(
            db_session, priority=IssuePriority.HIGH, created_at=utcnow() - timedelta(minutes=5)
        )
        await service.update_issue(issue.id, IssueUpdateRequest(status=IssueStatus.IN_PROGRESS))
        await service.update_issue(issue.id, IssueUpdateRequest(priority=IssuePriority.CRITICAL))
        await service.update_issue(issue.id, IssueUpdateRequest(assigned_user_id=uuid4()))
        await service.update_issue(issue.id, IssueUpdateRequest(title="Renamed"))

        activity = await service.recent_activity(count=10)

        descriptions = {item.type: item.description for item in activity}
        assert descriptions == {
            "issue_created": "New High priority Technical issue created",
            "status_changed": "Status changed to InProgress",
            "priority_changed": "Priority changed to Critical",
            "assigned": "Issue assigned to team member",
        }
        assert activity[-1].type == "issue_created"
        assert all(item.reference_number == issue.reference_number for item in activity)
        timestamps = [item.timestamp for item in activity]
        assert timestamps == sorted(timestamps, reverse=True)

    async def test_count_limits_the_feed(self, service, db_session):
        await IssueFactory.create_batch_async(db_session, 4)

        assert len(await service.recent_activity(count=3)) == 3
