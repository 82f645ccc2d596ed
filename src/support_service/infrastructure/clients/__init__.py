"""HTTP clients for downstream services."""

from support_service.infrastructure.clients.bot_relay import BotRelayClient, service_url_from_channel_data
from support_service.infrastructure.clients.whatsapp import WhatsAppApiClient

__all__ = ["BotRelayClient", "WhatsAppApiClient", "service_url_from_channel_data"]
