# src/support_service/api/routes/whatsapp.py
"""
WhatsApp Business webhook.

POST deliveries are signature-checked by ``WhatsAppSignatureMiddleware``
before they reach the route.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from support_service.api.dependencies import WhatsAppServiceDep
from support_service.api.middleware.rate_limit import limiter, webhook_limit
from support_service.api.schemas.whatsapp import WebhookAck
from support_service.domain import error_messages as msg
from support_service.domain.exceptions import InvalidRequest
from support_service.domain.result import raise_for_result
from support_service.services.whatsapp import parse_payload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/webhook", response_class=PlainTextResponse)
@limiter.limit(webhook_limit)
async def verify_webhook(
    request: Request,
    service: WhatsAppServiceDep,
    mode: Optional[str] = Query(None, alias="hub.mode"),
    verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echoes ``hub.challenge`` when the verify token matches."""
    return PlainTextResponse(raise_for_result(service.verify_webhook(mode, verify_token, challenge)))


@router.post("/webhook", response_model=WebhookAck)
@limiter.limit(webhook_limit)
async def receive_webhook(request: Request, service: WhatsAppServiceDep):
    body = await request.body()
    payload = parse_payload(body)
    if payload is None:
        raise InvalidRequest(msg.WEBHOOK_PAYLOAD_INVALID)

    processed = await service.handle_inbound(payload)
    logger.info("WhatsApp webhook processed", extra={"messages": processed})
    return WebhookAck(processed=processed)
