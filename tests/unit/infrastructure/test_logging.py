"""Unit tests for PII masking in log events."""

from support_service.infrastructure.observability.logging import mask_pii_in_dict, mask_pii_value


class TestMaskValue:
    def test_phone_keeps_plus_sign(self):
        assert mask_pii_value("Reply sent to +447700900123") == "Reply sent to +***"

    def test_email(self):
        assert mask_pii_value("from ada@example.com today") == "from ***@*** today"

    def test_card_number(self):
        assert mask_pii_value("card 4111 1111 1111 1111 stolen") == "card ****-****-****-**** stolen"

    def test_ssn_and_ip(self):
        assert mask_pii_value("ssn 123-45-6789 from 10.0.0.12") == "ssn ***-**-**** from ***.***.***.***"

    def test_non_strings_untouched(self):
        assert mask_pii_value(42) == 42


class TestMaskDict:
    def test_nested_values_and_secrets(self):
        event = {
            "event": "Inbound message",
            "request_id": "5b2e6a1e-0c1f-4b8e-9a57-8f0e1d2c3b4a",
            "access_token": "EAAG-secret",
            "message": {"from": "+447700900123", "tags": ["ada@example.com", 3]},
        }

        masked = mask_pii_in_dict(event)

        assert masked["request_id"] == event["request_id"]
        assert masked["access_token"] == "[REDACTED]"
        assert masked["message"] == {"from": "+***", "tags": ["***@***", 3]}
