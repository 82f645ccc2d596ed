"""
Access log for API requests.

Health checks are not logged. Bodies of write requests are included only
with ``LOG_INCLUDE_REQUEST_BODY``; they are compacted, truncated and masked
by the PII processor like every other field.
"""
import json
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from support_service.config.settings import get_settings
from support_service.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SKIPPED_PATHS = frozenset({"/health", "/health/live", "/health/ready"})


def compact_body(raw: bytes, max_length: int) -> str:
    text = raw.decode("utf-8", errors="replace")
    try:
        text = json.dumps(json.loads(text), separators=(",", ":"))
    except ValueError:
        pass
    if len(text) > max_length:
        return f"{text[:max_length]}... (truncated, {len(text)} chars)"
    return text


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self.settings = get_settings()

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        fields = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        if self.settings.log_include_request_body and request.method in ("POST", "PUT", "PATCH"):
            raw = await request.body()
            if raw:
                fields["request_body"] = compact_body(raw, self.settings.log_max_body_length)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("Request raised", **fields, error_type=type(e).__name__, duration_ms=_elapsed(started))
            raise

        duration_ms = _elapsed(started)
        log = logger.error if response.status_code >= 500 else logger.info
        log("Request handled", **fields, status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Process-Time-Ms"] = str(duration_ms)
        return response


def _elapsed(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
