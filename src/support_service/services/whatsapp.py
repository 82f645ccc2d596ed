"""
WhatsApp Business webhook handling.

Covers the three parts of the webhook contract:

- subscription handshake (``hub.mode`` / ``hub.verify_token`` / ``hub.challenge``)
- ``X-Hub-Signature-256`` verification of POST bodies
- parsing notifications and storing inbound messages as conversation
  messages under the reference ``whatsapp:{from}``
"""

import hashlib
import hmac
import logging
from datetime import datetime, timezone
from typing import Iterator, NamedTuple, Optional, Union

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.conversations import AddMessageRequest
from support_service.api.schemas.whatsapp import WhatsAppMessageData, WhatsAppWebhookPayload
from support_service.config.settings import Settings, get_settings
from support_service.domain import error_messages as msg
from support_service.domain.result import Result
from support_service.infrastructure.cache import TaggedCache
from support_service.interfaces import INotifier
from support_service.services.conversations import ConversationService

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
TIMESTAMP_HEADER = "X-WhatsApp-Timestamp"
SIGNATURE_PREFIX = "sha256="
REFERENCE_PREFIX = "whatsapp:"


class SignatureCheck(NamedTuple):
    valid: bool
    reason: str = ""


def conversation_reference(from_number: str) -> str:
    return f"{REFERENCE_PREFIX}{from_number}"


def compute_signature(body: bytes, secret: str) -> str:
    """Lower-case hex HMAC-SHA256 of ``body``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(
    body: bytes,
    signature: Optional[str],
    secret: Optional[str],
    timestamp: Optional[str] = None,
    max_age_minutes: int = 5,
    now: Optional[datetime] = None,
) -> SignatureCheck:
    """
    Check a webhook POST.

    The header must be present and start with ``sha256=`` even when no
    secret is configured. A timestamp that is not an integer is ignored.
    Without a secret the signature itself is not checked.
    """
    if not signature:
        return SignatureCheck(False, msg.SIGNATURE_HEADER_MISSING)
    if not signature.startswith(SIGNATURE_PREFIX):
        return SignatureCheck(False, msg.SIGNATURE_FORMAT_INVALID)

    if timestamp is not None and timestamp.strip().lstrip("-").isdigit():
        now = now or datetime.now(timezone.utc)
        sent_at = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        age_minutes = (now - sent_at).total_seconds() / 60
        if abs(age_minutes) > max_age_minutes:
            return SignatureCheck(False, msg.TIMESTAMP_OUT_OF_RANGE_TEMPLATE.format(minutes=age_minutes))

    if not secret:
        logger.warning("WhatsApp webhook secret not configured - skipping signature verification")
        return SignatureCheck(True)

    expected = compute_signature(body, secret)
    received = signature[len(SIGNATURE_PREFIX):].lower()
    if not hmac.compare_digest(expected, received):
        return SignatureCheck(False, msg.SIGNATURE_MISMATCH)
    return SignatureCheck(True)


def parse_payload(raw: Union[bytes, str, dict]) -> Optional[WhatsAppWebhookPayload]:
    """Parsed webhook payload, or None when the body is empty or malformed."""
    if not raw:
        logger.warning("Received empty webhook payload")
        return None
    try:
        if isinstance(raw, dict):
            payload = WhatsAppWebhookPayload.model_validate(raw)
        else:
            payload = WhatsAppWebhookPayload.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Invalid WhatsApp webhook payload", extra={"errors": e.error_count()})
        return None

    if not payload.object:
        logger.warning("Webhook payload without object type")
        return None
    return payload


def iter_messages(payload: WhatsAppWebhookPayload) -> Iterator[WhatsAppMessageData]:
    """Every message in the payload that has both a sender and an id."""
    for entry in payload.entry:
        for change in entry.changes:
            value = change.value
            if value is None:
                continue
            metadata = value.metadata
            profiles = {c.wa_id: c.profile.name for c in value.contacts if c.profile}
            for message in value.messages:
                if not message.from_ or not message.id:
                    continue
                yield WhatsAppMessageData(
                    message_id=message.id,
                    from_number=message.from_,
                    timestamp=message.timestamp,
                    type=message.type or "unknown",
                    text=message.text.body if message.text else "",
                    profile_name=profiles.get(message.from_) or None,
                    business_account_id=entry.id,
                    display_phone_number=metadata.display_phone_number if metadata else None,
                    phone_number_id=metadata.phone_number_id if metadata else None,
                )


def extract_message_data(payload: WhatsAppWebhookPayload) -> Optional[WhatsAppMessageData]:
    """
    First message of the payload.

    Returns None for notifications that only carry delivery statuses.
    """
    return next(iter_messages(payload), None)


def _message_time(timestamp: str) -> Optional[datetime]:
    if not timestamp.isdigit():
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


class WhatsAppService:
    def __init__(
        self,
        session: AsyncSession,
        cache: TaggedCache,
        notifier: Optional[INotifier] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.conversations = ConversationService(session, cache, notifier=notifier, settings=self.settings)

    def verify_webhook(
        self,
        mode: Optional[str],
        token: Optional[str],
        challenge: Optional[str],
    ) -> Result[str]:
        """Subscription handshake. Succeeds with the challenge to echo back."""
        configured = self.settings.whatsapp_verify_token
        if configured is None or not configured.get_secret_value():
            logger.error("WhatsApp verify token not configured")
            return Result.failure(msg.WHATSAPP_VERIFY_TOKEN_NOT_CONFIGURED)

        if (
            mode == "subscribe"
            and challenge
            and token is not None
            and hmac.compare_digest(token, configured.get_secret_value())
        ):
            logger.info("WhatsApp webhook verified")
            return Result.success(challenge)

        logger.warning("WhatsApp webhook verification failed", extra={"mode": mode})
        return Result.failure(msg.WHATSAPP_VERIFICATION_FAILED)

    async def handle_inbound(self, payload: WhatsAppWebhookPayload) -> int:
        """Store every inbound message. Returns how many were stored."""
        processed = 0
        for data in iter_messages(payload):
            request = AddMessageRequest(
                reference=conversation_reference(data.from_number),
                role="user",
                content=data.text or "",
                user_id=data.from_number,
                user_name=data.profile_name,
                channel_id="whatsapp",
                timestamp=_message_time(data.timestamp),
            )
            result = await self.conversations.add_message(request)
            if result.failed:
                logger.warning(
                    "Inbound WhatsApp message not stored",
                    extra={"message_id": data.message_id, "error": result.error_message},
                )
                continue
            processed += 1
            logger.info(
                "Inbound WhatsApp message stored",
                extra={"message_id": data.message_id, "type": data.type, "conversation_reference": request.reference},
            )
        return processed
