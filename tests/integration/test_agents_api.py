"""
Integration tests for the agents API.

Tests cover:
- Agent directory listing and lookup
- The caller's own agent profile
"""

from uuid import uuid4

from support_service.domain.enums import UserType
from tests.conftest import bearer

BASE = "/api/v1/agents"


class TestDirectory:
    async def test_list_agents(self, client, supervisor_headers, agent, other_agent):
        response = await client.get(BASE, headers=supervisor_headers)

        assert response.status_code == 200
        assert {a["id"] for a in response.json()} == {str(agent.user_id), str(other_agent.user_id)}

    async def test_get_agent(self, client, supervisor_headers, agent):
        response = await client.get(f"{BASE}/{agent.user_id}", headers=supervisor_headers)

        assert response.status_code == 200
        assert response.json()["agent_profile_id"] == str(agent.id)

    async def test_unknown_agent(self, client, supervisor_headers):
        response = await client.get(f"{BASE}/{uuid4()}", headers=supervisor_headers)

        assert response.status_code == 404

    async def test_requires_authentication(self, client):
        response = await client.get(BASE)

        assert response.status_code == 401


class TestCurrentAgent:
    async def test_agent_reads_own_profile(self, client, agent):
        response = await client.get(f"{BASE}/me", headers=bearer(agent.user_id, UserType.CHAT_AGENT))

        assert response.status_code == 200
        assert response.json()["id"] == str(agent.user_id)

    async def test_caller_without_profile(self, client, supervisor_headers):
        response = await client.get(f"{BASE}/me", headers=supervisor_headers)

        assert response.status_code == 200
        assert response.json() is None
