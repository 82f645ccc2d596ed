"""
Integration tests for health checks and access control.

Tests cover:
- Liveness check without authentication
- 401 envelope for missing or invalid tokens
- 403 envelope for callers without the required permission
- Request id propagation into error bodies
"""

from uuid import uuid4

import pytest

from support_service.domain.enums import UserType
from tests.conftest import bearer


class TestHealth:
    async def test_liveness(self, client):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestAuthentication:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/v1/conversations/escalated",
            "/api/v1/agents/available",
            "/api/v1/issues",
            "/api/v1/agents/me/preferences",
        ],
    )
    async def test_missing_token(self, client, path):
        response = await client.get(path)

        assert response.status_code == 401
        body = response.json()
        assert body["error"]["code"] == "UNAUTHORIZED"
        assert "request_id" in body

    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/v1/conversations/escalated",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    async def test_request_id_is_echoed(self, client):
        request_id = str(uuid4())

        response = await client.get("/api/v1/issues", headers={"X-Request-ID": request_id})

        assert response.headers["X-Request-ID"] == request_id
        assert response.json()["request_id"] == request_id

    async def test_correlation_id_defaults_to_request_id(self, client):
        response = await client.get("/health/live")

        assert response.headers["X-Correlation-ID"] == response.headers["X-Request-ID"]

    async def test_malformed_request_id_is_replaced(self, client):
        response = await client.get("/health/live", headers={"X-Request-ID": "not-a-uuid"})

        assert response.headers["X-Request-ID"] != "not-a-uuid"


class TestPermissions:
    async def test_end_user_cannot_read_conversations(self, client):
        response = await client.get("/api/v1/conversations/escalated", headers=bearer(uuid4(), UserType.END_USER))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    async def test_agent_cannot_reassign(self, client, assigned_conversation, other_agent, agent):
        response = await client.post(
            f"/api/v1/conversations/{assigned_conversation.id}/reassign",
            json={"new_agent_id": str(other_agent.user_id)},
            headers=bearer(agent.user_id, UserType.CHAT_AGENT),
        )

        assert response.status_code == 403

    async def test_bot_cannot_manage_agents(self, client, api_consumer_headers):
        response = await client.post(
            "/api/v1/agents/convert",
            json={"user_id": str(uuid4())},
            headers=api_consumer_headers,
        )

        assert response.status_code == 403

    async def test_issue_manager_reads_issues(self, client):
        response = await client.get("/api/v1/issues", headers=bearer(uuid4(), UserType.ISSUE_MANAGER))

        assert response.status_code == 200
        assert response.json()["items"] == []
