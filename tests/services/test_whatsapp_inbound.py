"""Tests for storing inbound WhatsApp messages."""

import pytest

from support_service.domain.enums import ConversationMode
from support_service.infrastructure.database.repositories import (
    ConversationMessageRepository,
    ConversationRepository,
)
from support_service.services.whatsapp import WhatsAppService, parse_payload
from tests.factories import ConversationFactory


def payload(*messages: dict, statuses: list | None = None):
    return parse_payload(
        {
            "object": "whatsapp_business_account",
            "entry": [
                {
                    "id": "WABA-1",
                    "changes": [
                        {
                            "field": "messages",
                            "value": {
                                "messaging_product": "whatsapp",
                                "metadata": {"display_phone_number": "15550001111", "phone_number_id": "PN-1"},
                                "contacts": [{"profile": {"name": "Ada Lovelace"}, "wa_id": "447700900123"}],
                                "messages": list(messages),
                                "statuses": statuses or [],
                            },
                        }
                    ],
                }
            ],
        }
    )


def text(body: str, sender: str = "447700900123", message_id: str = "wamid.1") -> dict:
    return {"from": sender, "id": message_id, "timestamp": "1740830400", "type": "text", "text": {"body": body}}


@pytest.fixture
def service(db_session, cache, notifier, test_settings):
    return WhatsAppService(db_session, cache, notifier=notifier, settings=test_settings)


async def test_first_message_opens_whatsapp_conversation(service, db_session):
    processed = await service.handle_inbound(payload(text("Hi, my order is late")))

    assert processed == 1
    conversation = await ConversationRepository(db_session).get_by_reference("whatsapp:447700900123")
    assert conversation.channel_id == "whatsapp"
    assert conversation.user_name == "Ada Lovelace"
    assert conversation.mode == ConversationMode.BOT

    messages = await ConversationMessageRepository(db_session).list_for_conversation(conversation.id)
    assert [(m.role, m.content) for m in messages] == [("user", "Hi, my order is late")]
    assert messages[0].timestamp.year == 2025


async def test_every_message_in_the_payload_is_stored(service, db_session):
    processed = await service.handle_inbound(
        payload(
            text("first", message_id="wamid.1"),
            text("second", message_id="wamid.2"),
            text("other customer", sender="447700900999", message_id="wamid.3"),
        )
    )

    assert processed == 3
    assert await ConversationRepository(db_session).get_by_reference("whatsapp:447700900999") is not None


async def test_status_notifications_store_nothing(service):
    processed = await service.handle_inbound(payload(statuses=[{"id": "wamid.1", "status": "read"}]))

    assert processed == 0


async def test_message_during_escalation_reaches_viewers(service, db_session, notifier):
    await ConversationFactory.create_async(
        db_session,
        reference="whatsapp:447700900123",
        mode=ConversationMode.HUMAN,
        channel_id="whatsapp",
    )

    await service.handle_inbound(payload(text("Are you still there?")))

    assert notifier.names == ["new_conversation_message"]
    assert notifier.payloads("new_conversation_message")[0]["content"] == "Are you still there?"
