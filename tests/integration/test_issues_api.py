"""
Integration tests for the issues API.

Tests cover:
- Intake by the bot and validation failures
- Reading, updating and listing issues
- Dashboard, performance and recent activity statistics
- Linking and unlinking with the right permissions
"""

from uuid import uuid4

import pytest

from support_service.domain import error_messages as msg
from support_service.domain.enums import UserType
from tests.conftest import bearer

BASE = "/api/v1/issues"

INTAKE = {
    "reporter_phone": "+447700900123",
    "reporter_name": "Ada Lovelace",
    "channel": "WhatsApp",
    "category": "Billing",
    "product": "Premium plan",
    "severity": "High",
    "priority": "Urgent",
    "summary": "Charged twice this month",
    "description": "Two identical charges appeared on the card statement.",
}


@pytest.fixture
def manager_headers():
    return bearer(uuid4(), UserType.ISSUE_MANAGER, name="Morgan Manager")


async def create_issue(client, headers, **overrides) -> str:
    response = await client.post(f"{BASE}/intake", json={**INTAKE, **overrides}, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]


class TestIntake:
    async def test_bot_reports_issue(self, client, api_consumer_headers, manager_headers):
        issue_id = await create_issue(client, api_consumer_headers)

        response = await client.get(f"{BASE}/{issue_id}", headers=manager_headers)

        assert response.status_code == 200
        details = response.json()
        assert details["issue"]["category"] == "Billing"
        assert details["issue"]["priority"] == "Medium"
        assert details["issue"]["status"] == "New"
        assert details["issue"]["reference_number"].startswith("ISS-")
        assert [e["type"] for e in details["events"]] == ["IssueCreated"]

    async def test_invalid_phone(self, client, api_consumer_headers):
        response = await client.post(
            f"{BASE}/intake",
            json={**INTAKE, "reporter_phone": "07700 900123"},
            headers=api_consumer_headers,
        )

        assert response.status_code == 400
        assert msg.PHONE_NUMBER_FORMAT in response.json()["error"]["message"]

    async def test_agents_cannot_report(self, client, agent):
        response = await client.post(
            f"{BASE}/intake",
            json=INTAKE,
            headers=bearer(agent.user_id, UserType.CHAT_AGENT),
        )

        assert response.status_code == 403


class TestUpdateAndList:
    async def test_status_change(self, client, api_consumer_headers, manager_headers):
        issue_id = await create_issue(client, api_consumer_headers)

        response = await client.patch(f"{BASE}/{issue_id}", json={"status": "InProgress"}, headers=manager_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "InProgress"
        events = (await client.get(f"{BASE}/{issue_id}", headers=manager_headers)).json()["events"]
        assert "IssueStatusChanged" in [e["type"] for e in events]

    async def test_unknown_issue(self, client, manager_headers):
        response = await client.get(f"{BASE}/{uuid4()}", headers=manager_headers)

        assert response.status_code == 404

    async def test_list_filters_by_category(self, client, api_consumer_headers, manager_headers):
        await create_issue(client, api_consumer_headers)
        await create_issue(client, api_consumer_headers, category="Technical", summary="App crash")

        response = await client.get(BASE, params={"category": "Technical"}, headers=manager_headers)

        assert response.status_code == 200
        body = response.json()
        assert [i["title"] for i in body["items"]] == ["App crash"]
        assert body["pagination"]["total"] == 1


class TestStatistics:
    async def test_dashboard_counts_open_issues(self, client, api_consumer_headers, manager_headers):
        await create_issue(client, api_consumer_headers)

        response = await client.get(f"{BASE}/dashboard", headers=manager_headers)

        assert response.status_code == 200
        metrics = response.json()
        assert metrics["total_open_issues"] == 1
        assert metrics["channel_distribution"] == {"WhatsApp": 1}
        assert metrics["sla_compliance_formatted"] == "100.0%"

    async def test_performance_window(self, client, api_consumer_headers, manager_headers):
        await create_issue(client, api_consumer_headers)

        response = await client.get(f"{BASE}/performance", params={"days": 7}, headers=manager_headers)

        assert response.status_code == 200
        stats = response.json()
        assert len(stats["daily_volume"]) == 7
        assert sum(point["value"] for point in stats["daily_volume"]) == 1
        assert stats["period_days"] == 7

    async def test_performance_rejects_empty_window(self, client, manager_headers):
        response = await client.get(f"{BASE}/performance", params={"days": 0}, headers=manager_headers)

        assert response.status_code == 422

    async def test_recent_activity(self, client, api_consumer_headers, manager_headers):
        issue_id = await create_issue(client, api_consumer_headers)
        await client.patch(f"{BASE}/{issue_id}", json={"status": "InProgress"}, headers=manager_headers)

        response = await client.get(f"{BASE}/recent-activity", params={"count": 5}, headers=manager_headers)

        assert response.status_code == 200
        assert {item["type"] for item in response.json()} == {"issue_created", "status_changed"}


class TestLinks:

    async def test_link_and_unlink(self, client, api_consumer_headers, manager_headers):
        parent = await create_issue(client, api_consumer_headers)
        child = await create_issue(client, api_consumer_headers, summary="Charged twice again")

        linked = await client.post(
            f"{BASE}/links",
            json={"parent_issue_id": parent, "child_issue_id": child, "link_type": "Duplicate"},
            headers=manager_headers,
        )
        duplicate = await client.post(
            f"{BASE}/links",
            json={"parent_issue_id": child, "child_issue_id": parent},
            headers=manager_headers,
        )

        assert linked.status_code == 201
        assert duplicate.status_code == 409

        unlinked = await client.request(
            "DELETE",
            f"{BASE}/links/{linked.json()['id']}",
            json={"reason": "Different charges"},
            headers=manager_headers,
        )
        assert unlinked.status_code == 200

        missing = await client.delete(f"{BASE}/links/{uuid4()}", headers=manager_headers)
        assert missing.status_code == 404

    async def test_self_link_is_rejected(self, client, api_consumer_headers, manager_headers):
        issue_id = await create_issue(client, api_consumer_headers)

        response = await client.post(
            f"{BASE}/links",
            json={"parent_issue_id": issue_id, "child_issue_id": issue_id},
            headers=manager_headers,
        )

        assert response.status_code == 400
        assert msg.CANNOT_LINK_TO_SELF in response.json()["error"]["message"]

    async def test_linking_needs_permission(self, client, api_consumer_headers):
        response = await client.post(
            f"{BASE}/links",
            json={"parent_issue_id": str(uuid4()), "child_issue_id": str(uuid4())},
            headers=api_consumer_headers,
        )

        assert response.status_code == 403
