"""Unit tests for the WebSocket connection manager."""

import pytest
from starlette.websockets import WebSocketState

from support_service.infrastructure.realtime import conversation_group
from support_service.infrastructure.realtime.hub import ConnectionManager, HubNotifier


class FakeWebSocket:
    def __init__(self, state: WebSocketState = WebSocketState.CONNECTED, error: Exception | None = None):
        self.application_state = state
        self.error = error
        self.accepted = False
        self.sent: list[dict] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message: dict):
        if self.error is not None:
            raise self.error
        self.sent.append(message)


@pytest.fixture
def manager():
    return ConnectionManager()


class TestConnectionManager:
    async def test_connect_tracks_user(self, manager):
        socket = FakeWebSocket()

        connection_id = await manager.connect(socket, "user-1")

        assert socket.accepted
        assert manager.connections_for_user("user-1") == [connection_id]
        assert manager.connection_count == 1

    async def test_broadcast_reaches_group_members_only(self, manager):
        inside, outside = FakeWebSocket(), FakeWebSocket()
        inside_id = await manager.connect(inside, "user-1")
        await manager.connect(outside, "user-2")
        await manager.add_to_group(inside_id, conversation_group("c1"))

        await manager.broadcast("new_message", {"content": "hi"}, group=conversation_group("c1"))

        assert [m["type"] for m in inside.sent] == ["new_message"]
        assert inside.sent[0]["data"] == {"content": "hi"}
        assert outside.sent == []

    async def test_disconnected_socket_is_removed(self, manager):
        live = FakeWebSocket()
        gone = FakeWebSocket(state=WebSocketState.DISCONNECTED)
        await manager.connect(live, "user-1")
        gone_id = await manager.connect(gone, "user-2")
        await manager.add_to_group(gone_id, "supervisors")

        await manager.broadcast("agent_status_changed", {"status": "Away"})

        assert manager.connection_count == 1
        assert manager.connections_for_user("user-2") == []
        assert manager.group_members("supervisors") == set()
        assert gone.sent == []
        assert len(live.sent) == 1

    async def test_failed_send_drops_connection(self, manager):
        broken = FakeWebSocket(error=RuntimeError("socket closed"))
        await manager.connect(broken, "user-1")

        await manager.broadcast("agent_status_changed", {"status": "Away"})

        assert manager.connection_count == 0

    async def test_disconnect_forgets_empty_groups(self, manager):
        connection_id = await manager.connect(FakeWebSocket(), "user-1")
        await manager.add_to_group(connection_id, conversation_group("c1"))

        await manager.disconnect(connection_id)

        assert manager.group_members(conversation_group("c1")) == set()
        assert conversation_group("c1") not in manager._groups


async def test_hub_notifier_wraps_events(manager):
    socket = FakeWebSocket()
    await manager.connect(socket, "user-1")

    await HubNotifier(manager).conversation_assigned("whatsapp:+1555", "agent-1", "Jane")

    assert socket.sent[0]["type"] == "conversation_assigned"
    assert socket.sent[0]["data"] == {
        "conversation_reference": "whatsapp:+1555",
        "agent_id": "agent-1",
        "agent_name": "Jane",
    }
