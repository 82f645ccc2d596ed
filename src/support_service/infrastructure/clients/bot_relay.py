# src/support_service/infrastructure/clients/bot_relay.py
"""
Client for the bot relay that delivers agent messages back into the chat channel.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from support_service.config.settings import get_settings
from support_service.domain.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def service_url_from_channel_data(channel_data: Optional[str]) -> Optional[str]:
    """Extract ``ServiceUrl`` from the stored channel reference JSON, if any."""
    if not channel_data:
        return None
    try:
        parsed = json.loads(channel_data)
    except ValueError:
        return None
    if isinstance(parsed, dict):
        return parsed.get("ServiceUrl")
    return None


class BotRelayClient:
    """
    POSTs agent activities to the bot relay endpoint.

    Example:
        >>> client = BotRelayClient()
        >>> await client.send_agent_activity(
        ...     conversation_id="whatsapp:+447700900123",
        ...     content="Hi, I'm taking over from here.",
        ...     agent_id="...",
        ...     agent_name="Dana",
        ...     tenant_id="default",
        ... )
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.url = url or settings.bot_relay_url
        self.timeout = timeout or settings.bot_relay_timeout
        self._transport = transport

    async def send_agent_activity(
        self,
        conversation_id: str,
        content: str,
        agent_id: str,
        agent_name: str,
        tenant_id: str,
        conversation_reference: Optional[str] = None,
        service_url: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "conversation_id": conversation_id,
            "content": content,
            "agent_id": agent_id,
            "agent_name": agent_name,
            "tenant_id": tenant_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "conversation_reference": conversation_reference,
            "service_url": service_url or service_url_from_channel_data(conversation_reference),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"Bot relay request failed: {e}",
                details={"url": self.url},
            ) from e

        if response.is_error:
            raise ExternalServiceError(
                f"Bot relay returned error: {response.status_code} - {response.text}",
                details={"url": self.url, "status_code": response.status_code},
            )

        logger.debug("Agent activity relayed", extra={"conversation_id": conversation_id})
