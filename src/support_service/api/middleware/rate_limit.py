# src/support_service/api/middleware/rate_limit.py
"""
slowapi limits for the bot-facing write endpoints and the WhatsApp webhook.

Decorated routes take a ``request: Request`` argument. Counters live in
Redis when configured, in memory otherwise.
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from support_service.api.schemas.errors import ErrorCode
from support_service.config.settings import get_settings

logger = logging.getLogger(__name__)


def get_ip_key(request: Request) -> str:
    return f"ip:{get_remote_address(request)}"


def create_rate_limiter() -> Limiter:
    settings = get_settings()

    return Limiter(
        key_func=get_ip_key,
        default_limits=[],
        storage_uri=settings.redis_url.get_secret_value() if settings.redis_url else "memory://",
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
        in_memory_fallback_enabled=True,
        swallow_errors=True,
    )


limiter = create_rate_limiter()


def webhook_limit() -> str:
    return get_settings().rate_limit_webhook


def write_limit() -> str:
    return get_settings().rate_limit_write


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = str(getattr(exc, "retry_after", None) or 60)
    logger.warning(
        "Rate limit exceeded",
        extra={"path": request.url.path, "limit": str(exc.detail)},
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": {
                "code": ErrorCode.RATE_LIMITED.value,
                "message": "Too many requests. Please try again later.",
                "details": {"limit": str(exc.detail)},
            },
            "request_id": getattr(request.state, "request_id", None),
            "suggested_action": f"Retry after {retry_after} seconds.",
        },
        headers={"Retry-After": retry_after},
    )


def setup_rate_limiting(app) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    if get_settings().rate_limit_enabled:
        logger.info("Rate limiting enabled")
    else:
        logger.info("Rate limiting is disabled")
