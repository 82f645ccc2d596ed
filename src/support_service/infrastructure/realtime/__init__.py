"""Realtime notifications over WebSocket."""

from support_service.infrastructure.realtime.hub import (
    ConnectionManager,
    HubNotifier,
    RealtimeEvent,
    connection_manager,
    conversation_group,
)

__all__ = [
    "ConnectionManager",
    "HubNotifier",
    "RealtimeEvent",
    "connection_manager",
    "conversation_group",
]
