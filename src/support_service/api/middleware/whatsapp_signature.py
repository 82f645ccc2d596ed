"""
Signature verification for WhatsApp webhook deliveries.

Only POSTs to the webhook path are checked. The body is read here and
cached by starlette, so the route can still read it.
"""
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from support_service.api.middleware.errors import app_error_response
from support_service.config.settings import get_settings
from support_service.domain.exceptions import WebhookVerificationFailed
from support_service.services.whatsapp import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/v1/whatsapp/webhook"


class WhatsAppSignatureMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, path: str = WEBHOOK_PATH):
        super().__init__(app)
        self.path = path

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "POST" or request.url.path.rstrip("/") != self.path:
            return await call_next(request)

        settings = get_settings()
        secret = settings.whatsapp_webhook_secret.get_secret_value() if settings.whatsapp_webhook_secret else None
        body = await request.body()

        check = verify_signature(
            body,
            request.headers.get(SIGNATURE_HEADER),
            secret,
            timestamp=request.headers.get(TIMESTAMP_HEADER),
            max_age_minutes=settings.whatsapp_max_timestamp_age_minutes,
        )
        if not check.valid:
            client = request.client.host if request.client else "unknown"
            logger.warning(
                "WhatsApp verification failed",
                extra={"remote_addr": client, "reason": check.reason},
            )
            error = WebhookVerificationFailed(f"Unauthorized - {check.reason}")
            return app_error_response(request, error, is_production=settings.is_production)

        return await call_next(request)
