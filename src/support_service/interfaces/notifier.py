# src/support_service/interfaces/notifier.py
from abc import ABC, abstractmethod
from typing import Any, Optional


class INotifier(ABC):
    """
    Realtime fan-out to connected agent consoles.

    Command handlers depend on this interface only; the WebSocket hub
    implements it in production and tests substitute a recorder.
    """

    @abstractmethod
    async def broadcast(self, event: str, payload: dict[str, Any], group: Optional[str] = None) -> None:
        """Send ``event`` to every connection, or only to members of ``group``."""
        pass

    @abstractmethod
    async def add_to_group(self, connection_id: str, group: str) -> None:
        """Subscribe a connection to a group."""
        pass

    @abstractmethod
    def connections_for_user(self, user_id: str) -> list[str]:
        """Connection ids currently opened by ``user_id``."""
        pass
