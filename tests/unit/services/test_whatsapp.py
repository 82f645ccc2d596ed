"""
Unit tests for WhatsApp webhook helpers.

Tests cover:
- HMAC-SHA256 signature verification
- Replay protection through the timestamp header
- Payload parsing and message extraction
- Verify token handshake
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import SecretStr

from support_service.domain import error_messages as msg
from support_service.services.whatsapp import (
    WhatsAppService,
    compute_signature,
    conversation_reference,
    extract_message_data,
    iter_messages,
    parse_payload,
    verify_signature,
)

SECRET = "webhook-secret"
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def webhook_body(*messages: dict, statuses: list | None = None) -> dict:
    return {
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


def text_message(body: str = "Hello", sender: str = "447700900123", message_id: str = "wamid.1") -> dict:
    return {"from": sender, "id": message_id, "timestamp": "1740830400", "type": "text", "text": {"body": body}}


# ============================================================================
# Signature verification
# ============================================================================


class TestVerifySignature:
    def test_valid_signature(self):
        body = b'{"object":"whatsapp_business_account"}'
        signature = "sha256=" + compute_signature(body, SECRET)

        assert verify_signature(body, signature, SECRET).valid

    def test_signature_comparison_ignores_hex_case(self):
        body = b"payload"
        signature = "sha256=" + compute_signature(body, SECRET).upper()

        assert verify_signature(body, signature, SECRET).valid

    def test_tampered_body_fails(self):
        signature = "sha256=" + compute_signature(b"original", SECRET)

        check = verify_signature(b"tampered", signature, SECRET)

        assert not check.valid
        assert check.reason == msg.SIGNATURE_MISMATCH

    def test_missing_header(self):
        check = verify_signature(b"payload", None, SECRET)

        assert check == (False, msg.SIGNATURE_HEADER_MISSING)

    def test_header_without_prefix(self):
        check = verify_signature(b"payload", compute_signature(b"payload", SECRET), SECRET)

        assert check.reason == msg.SIGNATURE_FORMAT_INVALID

    def test_prefix_required_even_without_secret(self):
        assert not verify_signature(b"payload", "abc", None).valid
        assert verify_signature(b"payload", "sha256=anything", None).valid

    def test_stale_timestamp_is_rejected(self):
        body = b"payload"
        signature = "sha256=" + compute_signature(body, SECRET)
        sent = str(int((NOW - timedelta(minutes=10)).timestamp()))

        check = verify_signature(body, signature, SECRET, timestamp=sent, max_age_minutes=5, now=NOW)

        assert not check.valid
        assert "10.0 minutes" in check.reason

    def test_future_timestamp_is_rejected(self):
        body = b"payload"
        signature = "sha256=" + compute_signature(body, SECRET)
        sent = str(int((NOW + timedelta(minutes=6)).timestamp()))

        assert not verify_signature(body, signature, SECRET, timestamp=sent, now=NOW).valid

    def test_recent_timestamp_is_accepted(self):
        body = b"payload"
        signature = "sha256=" + compute_signature(body, SECRET)
        sent = str(int((NOW - timedelta(minutes=2)).timestamp()))

        assert verify_signature(body, signature, SECRET, timestamp=sent, now=NOW).valid

    def test_non_numeric_timestamp_is_ignored(self):
        body = b"payload"
        signature = "sha256=" + compute_signature(body, SECRET)

        assert verify_signature(body, signature, SECRET, timestamp="yesterday", now=NOW).valid


# ============================================================================
# Payload parsing
# ============================================================================


class TestParsePayload:
    def test_parses_json_bytes(self):
        payload = parse_payload(json.dumps(webhook_body(text_message())).encode())

        assert payload is not None
        assert payload.object == "whatsapp_business_account"

    @pytest.mark.parametrize("raw", [b"", b"not json", b'{"entry": []}', b'{"object": "", "entry": []}'])
    def test_rejects_malformed_payloads(self, raw):
        assert parse_payload(raw) is None

    def test_extracts_first_text_message(self):
        payload = parse_payload(webhook_body(text_message("Need help with my bill")))

        data = extract_message_data(payload)

        assert data.message_id == "wamid.1"
        assert data.from_number == "447700900123"
        assert data.text == "Need help with my bill"
        assert data.profile_name == "Ada Lovelace"
        assert data.business_account_id == "WABA-1"
        assert data.phone_number_id == "PN-1"

    def test_status_only_notification_has_no_message(self):
        payload = parse_payload(webhook_body(statuses=[{"id": "wamid.1", "status": "delivered"}]))

        assert extract_message_data(payload) is None

    def test_messages_without_sender_are_skipped(self):
        payload = parse_payload(webhook_body({"id": "wamid.9", "type": "text"}, text_message(message_id="wamid.2")))

        assert [m.message_id for m in iter_messages(payload)] == ["wamid.2"]

    def test_non_text_message_has_empty_text(self):
        payload = parse_payload(
            webhook_body({"from": "447700900123", "id": "wamid.3", "timestamp": "1", "type": "image"})
        )

        data = extract_message_data(payload)

        assert data.type == "image"
        assert data.text == ""


def test_conversation_reference_prefixes_channel():
    assert conversation_reference("447700900123") == "whatsapp:447700900123"


# ============================================================================
# Verify token handshake
# ============================================================================


class TestVerifyWebhook:
    @pytest.fixture
    def service(self, db_session, cache, test_settings):
        settings = test_settings.model_copy(update={"whatsapp_verify_token": SecretStr("verify-me")})
        return WhatsAppService(db_session, cache, settings=settings)

    def test_matching_token_echoes_challenge(self, service):
        result = service.verify_webhook("subscribe", "verify-me", "challenge-123")

        assert result.succeeded
        assert result.data == "challenge-123"

    @pytest.mark.parametrize(
        "mode,token,challenge",
        [
            ("subscribe", "wrong", "challenge-123"),
            ("unsubscribe", "verify-me", "challenge-123"),
            ("subscribe", "verify-me", None),
            ("subscribe", None, "challenge-123"),
        ],
    )
    def test_anything_else_fails(self, service, mode, token, challenge):
        result = service.verify_webhook(mode, token, challenge)

        assert result.failed
        assert result.error_message == msg.WHATSAPP_VERIFICATION_FAILED

    def test_unconfigured_token_fails(self, db_session, cache, test_settings):
        settings = test_settings.model_copy(update={"whatsapp_verify_token": None})
        service = WhatsAppService(db_session, cache, settings=settings)

        result = service.verify_webhook("subscribe", "verify-me", "challenge-123")

        assert result.error_message == msg.WHATSAPP_VERIFY_TOKEN_NOT_CONFIGURED
