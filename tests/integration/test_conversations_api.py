"""
Integration tests for the conversation API.

Tests cover:
- Bot intake and escalation through the API
- Agent accepting, reading and completing a conversation
- Status codes for conflicts, validation and unknown conversations
- Transfer, dashboard and auto-assignment settings endpoints
"""

from support_service.domain import error_messages as msg
from support_service.domain.enums import UserType
from tests.conftest import bearer

REFERENCE = "whatsapp:447700900123"
BASE = "/api/v1/conversations"
NOTES = "Refund issued and confirmed with the customer."


async def escalate(client, headers, reason: str = "Customer asked for a human") -> str:
    await client.post(
        f"{BASE}/messages",
        json={"reference": REFERENCE, "role": "user", "content": "I need a person", "user_name": "Ada"},
        headers=headers,
    )
    response = await client.post(
        f"{BASE}/escalate",
        json={
            "reference": REFERENCE,
            "reason": reason,
            "transcript": "User: I need a person\nBot: Connecting you now",
            "whatsapp_phone_number": "+447700900123",
        },
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()["id"]


class TestBotIntake:
    async def test_message_creates_conversation(self, client, api_consumer_headers, supervisor_headers):
        response = await client.post(
            f"{BASE}/messages",
            json={"reference": REFERENCE, "role": "user", "content": "Hello"},
            headers=api_consumer_headers,
        )

        assert response.status_code == 201
        details = (await client.get(f"{BASE}/{REFERENCE}", headers=supervisor_headers)).json()
        assert details["conversation"]["mode"] == "Bot"
        assert [m["content"] for m in details["messages"]] == ["Hello"]

    async def test_missing_role_is_rejected(self, client, api_consumer_headers):
        response = await client.post(
            f"{BASE}/messages",
            json={"reference": REFERENCE, "content": "Hello"},
            headers=api_consumer_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_escalation_appears_in_queue(self, client, api_consumer_headers, supervisor_headers, notifier):
        await escalate(client, api_consumer_headers, reason="urgent: card stolen")

        escalated = (await client.get(f"{BASE}/escalated", headers=supervisor_headers)).json()
        pending = (await client.get(f"{BASE}/pending", headers=supervisor_headers)).json()

        assert [c["reference"] for c in escalated] == [REFERENCE]
        assert escalated[0]["priority"] == 3
        assert pending[0]["conversation_reference"] == REFERENCE
        assert "escalation_popup" in notifier.names


class TestAgentWorkflow:
    async def test_accept_then_complete(self, client, api_consumer_headers, agent, other_agent):
        await escalate(client, api_consumer_headers)
        agent_headers = bearer(agent.user_id, UserType.CHAT_AGENT)

        accepted = await client.post(f"{BASE}/{REFERENCE}/accept", headers=agent_headers)
        conflict = await client.post(
            f"{BASE}/{REFERENCE}/accept",
            headers=bearer(other_agent.user_id, UserType.CHAT_AGENT),
        )

        assert accepted.status_code == 200
        assert conflict.status_code == 409
        assert conflict.json()["error"]["message"] == msg.CONVERSATION_ALREADY_ACCEPTED

        active = (await client.get(f"{BASE}/mine/active", headers=agent_headers)).json()
        assert [c["reference"] for c in active["items"]] == [REFERENCE]

        completed = await client.post(
            f"{BASE}/{REFERENCE}/complete",
            json={"category": "Resolved", "notes": NOTES},
            headers=agent_headers,
        )

        assert completed.status_code == 200
        past = (await client.get(f"{BASE}/mine/past", headers=agent_headers)).json()
        assert past["items"][0]["resolution_category"] == "Resolved"

    async def test_short_resolution_notes(self, client, assigned_conversation, agent):
        response = await client.post(
            f"{BASE}/{assigned_conversation.reference}/complete",
            json={"category": "Resolved", "notes": "done"},
            headers=bearer(agent.user_id, UserType.CHAT_AGENT),
        )

        assert response.status_code == 400
        assert msg.RESOLUTION_NOTES_TOO_SHORT in response.json()["error"]["message"]

    async def test_unknown_conversation(self, client, agent):
        response = await client.post(
            f"{BASE}/whatsapp:nobody/accept",
            headers=bearer(agent.user_id, UserType.CHAT_AGENT),
        )

        assert response.status_code == 404

    async def test_transfer_to_colleague(self, client, assigned_conversation, agent, other_agent):
        response = await client.post(
            f"{BASE}/{assigned_conversation.id}/transfer",
            json={"to_agent_id": str(other_agent.user_id), "reason": "Language"},
            headers=bearer(agent.user_id, UserType.CHAT_AGENT),
        )

        assert response.status_code == 200
        assert response.json()["id"] == str(assigned_conversation.id)

    async def test_transfer_without_target(self, client, assigned_conversation, agent):
        response = await client.post(
            f"{BASE}/{assigned_conversation.id}/transfer",
            json={"reason": "Language"},
            headers=bearer(agent.user_id, UserType.CHAT_AGENT),
        )

        assert response.status_code == 400

    async def test_supervisor_reassigns(self, client, supervisor_headers, assigned_conversation, other_agent):
        response = await client.post(
            f"{BASE}/{assigned_conversation.id}/reassign",
            json={"new_agent_id": str(other_agent.user_id), "reason": "Shift change"},
            headers=supervisor_headers,
        )

        assert response.status_code == 200


class TestDashboard:
    async def test_counts_escalations(self, client, api_consumer_headers, supervisor_headers):
        await escalate(client, api_consumer_headers)

        response = await client.get(f"{BASE}/dashboard", headers=supervisor_headers)

        assert response.status_code == 200
        metrics = response.json()
        assert metrics["total_conversations"] == 1
        assert metrics["escalated_conversations"] == 1

    async def test_performance_stats(self, client, api_consumer_headers, supervisor_headers):
        await escalate(client, api_consumer_headers)

        response = await client.get(f"{BASE}/performance", params={"days": 7}, headers=supervisor_headers)

        assert response.status_code == 200
        stats = response.json()
        assert len(stats["daily_volume"]) == 7
        assert len(stats["hourly_distribution"]) == 24
        assert {group["name"]: group["escalated"] for group in stats["mode_performance"]} == {"Escalating": 1}



class TestAutoAssignmentSettings:
    async def test_update_and_read(self, client, supervisor_headers):
        updated = await client.put(
            f"{BASE}/auto-assignment/settings",
            json={"is_enabled": True, "strategy": "LeastLoaded", "max_retry_attempts": 2},
            headers=supervisor_headers,
        )
        current = await client.get(f"{BASE}/auto-assignment/settings", headers=supervisor_headers)

        assert updated.status_code == 200
        assert current.json()["strategy"] == "LeastLoaded"
        assert current.json()["max_retry_attempts"] == 2
