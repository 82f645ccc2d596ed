# src/support_service/infrastructure/clients/whatsapp.py
"""Outbound WhatsApp Business (Graph API) client."""
import logging
from typing import Optional

import httpx

from support_service.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class WhatsAppApiClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.phone_number_id = settings.whatsapp_phone_number_id
        self.base_url = settings.whatsapp_graph_url
        self._access_token = settings.whatsapp_access_token
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if self._access_token:
            return {"Authorization": f"Bearer {self._access_token.get_secret_value()}"}
        return {}

    async def send_text_message(self, to: str, text: str) -> bool:
        """
        Send a plain text message.

        Returns:
            True when the Graph API accepted the message. Transport errors and
            non-2xx responses are logged and reported as False.
        """
        if not self.phone_number_id:
            logger.warning("WhatsApp Phone Number ID not configured - skipping text message")
            return False

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=10.0,
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self.phone_number_id}/messages", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Error sending WhatsApp text message: {e}")
            return False

        if response.is_success:
            logger.info("WhatsApp text message sent")
            return True

        logger.warning(
            "Failed to send WhatsApp text message",
            extra={"status_code": response.status_code, "response": response.text[:500]},
        )
        return False
