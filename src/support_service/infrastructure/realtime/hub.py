# src/support_service/infrastructure/realtime/hub.py
"""
WebSocket hub for agent consoles.

``ConnectionManager`` tracks open sockets, the user behind each one and the
named groups they joined. ``HubNotifier`` is what command handlers call: one
method per UI event, each producing a ``RealtimeEvent`` envelope.
"""
import asyncio
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import WebSocket
from pydantic import BaseModel, Field
from starlette.websockets import WebSocketState

from support_service.interfaces import INotifier

logger = logging.getLogger(__name__)


def conversation_group(conversation_id: Any) -> str:
    return f"conversation:{conversation_id}"


class RealtimeEvent(BaseModel):
    """Envelope sent over the socket."""
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConnectionManager(INotifier):
    def __init__(self):
        self._connections: dict[str, WebSocket] = {}
        self._users: dict[str, str] = {}
        self._groups: dict[str, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: str) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        async with self._lock:
            self._connections[connection_id] = websocket
            self._users[connection_id] = user_id
        logger.info("Realtime connection opened", extra={"connection_id": connection_id, "user_id": user_id})
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            self._connections.pop(connection_id, None)
            self._users.pop(connection_id, None)
            for group in list(self._groups):
                self._groups[group].discard(connection_id)
                if not self._groups[group]:
                    del self._groups[group]
        logger.info("Realtime connection closed", extra={"connection_id": connection_id})

    async def add_to_group(self, connection_id: str, group: str) -> None:
        async with self._lock:
            self._groups[group].add(connection_id)

    async def remove_from_group(self, connection_id: str, group: str) -> None:
        async with self._lock:
            self._groups[group].discard(connection_id)

    def connections_for_user(self, user_id: str) -> list[str]:
        return [cid for cid, uid in self._users.items() if uid == user_id]

    def group_members(self, group: str) -> set[str]:
        return set(self._groups.get(group, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def broadcast(self, event: str, payload: dict[str, Any], group: Optional[str] = None) -> None:
        message = RealtimeEvent(type=event, data=payload).model_dump(mode="json")
        targets = self.group_members(group) if group else set(self._connections)

        stale = []
        for connection_id in targets:
            websocket = self._connections.get(connection_id)
            if websocket is None:
                continue
            if websocket.application_state != WebSocketState.CONNECTED:
                stale.append(connection_id)
                continue
            try:
                await websocket.send_json(message)
            except (RuntimeError, OSError) as e:
                logger.warning(
                    "Dropping realtime connection", extra={"connection_id": connection_id, "error": str(e)}
                )
                stale.append(connection_id)

        for connection_id in stale:
            await self.disconnect(connection_id)


class HubNotifier:
    """Typed UI events on top of an INotifier."""

    def __init__(self, notifier: INotifier):
        self.notifier = notifier

    async def _send(self, event: str, payload: dict[str, Any], group: Optional[str] = None) -> None:
        await self.notifier.broadcast(event, payload, group=group)

    async def conversation_escalated(self, reference: str, reason: str | None, priority: int) -> None:
        await self._send("conversation_escalated", {
            "conversation_reference": reference,
            "reason": reason,
            "priority": priority,
        })

    async def escalation_popup(self, popup: dict[str, Any]) -> None:
        await self._send("escalation_popup", popup)

    async def escalation_accepted(self, reference: str, agent_id: str, agent_name: str) -> None:
        await self._send("escalation_accepted", {
            "conversation_reference": reference,
            "agent_id": agent_id,
            "agent_name": agent_name,
        })

    async def conversation_assigned(self, reference: str, agent_id: str, agent_name: str) -> None:
        await self._send("conversation_assigned", {
            "conversation_reference": reference,
            "agent_id": agent_id,
            "agent_name": agent_name,
        })

    async def conversation_completed(self, reference: str, agent_id: str) -> None:
        await self._send("conversation_completed", {
            "conversation_reference": reference,
            "agent_id": agent_id,
        })

    async def conversation_transferred(
        self, reference: str, from_agent_id: str | None, to_agent_id: str, reason: str | None
    ) -> None:
        await self._send("conversation_transferred", {
            "conversation_reference": reference,
            "from_agent_id": from_agent_id,
            "to_agent_id": to_agent_id,
            "reason": reason,
        })

    async def conversation_reassigned(
        self, reference: str, previous_agent_id: str | None, new_agent_id: str, reason: str | None
    ) -> None:
        await self._send("conversation_reassigned", {
            "conversation_reference": reference,
            "previous_agent_id": previous_agent_id,
            "new_agent_id": new_agent_id,
            "reason": reason,
        })

    async def agent_status_changed(self, agent_id: str, status: str) -> None:
        await self._send("agent_status_changed", {"agent_id": agent_id, "status": status})

    async def new_conversation_message(self, conversation_id: Any, reference: str, message: dict[str, Any]) -> None:
        payload = {"conversation_id": str(conversation_id), "conversation_reference": reference, **message}
        await self._send("new_conversation_message", payload, group=conversation_group(conversation_id))

    async def join_conversation(self, user_id: str, conversation_id: Any) -> int:
        """Add every open connection of ``user_id`` to the conversation group."""
        connections = self.notifier.connections_for_user(user_id)
        for connection_id in connections:
            await self.notifier.add_to_group(connection_id, conversation_group(conversation_id))
        return len(connections)


connection_manager = ConnectionManager()
