"""
X-Request-ID and X-Correlation-ID handling.

A caller-supplied id is kept when it is a canonical UUID4, otherwise a new
one is generated; the correlation id defaults to the request id. Both are
stored on ``request.state``, in context variables read by the log
processor, and echoed on the response.
"""
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

logger = structlog.get_logger(__name__)


def is_valid_uuid4(value: str) -> bool:
    try:
        parsed = uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return parsed.version == 4 and str(parsed) == value


def add_request_id_to_log(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key, var in (("request_id", request_id_var), ("correlation_id", correlation_id_var)):
        value = var.get()
        if value:
            event_dict.setdefault(key, value)
    return event_dict


def _accepted(request: Request, header: str) -> Optional[str]:
    value = request.headers.get(header)
    if value and not is_valid_uuid4(value):
        logger.warning(
            "Ignoring malformed id header",
            header=header,
            client_ip=request.client.host if request.client else None,
        )
        return None
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _accepted(request, REQUEST_ID_HEADER) or str(uuid.uuid4())
        correlation_id = _accepted(request, CORRELATION_ID_HEADER) or request_id

        request.state.request_id = request_id
        request.state.correlation_id = correlation_id
        request_token = request_id_var.set(request_id)
        correlation_token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(request_token)
            correlation_id_var.reset(correlation_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
