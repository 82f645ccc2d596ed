"""
Exception handlers rendering the error envelope:

    {"error": {"code": ..., "message": ..., "details": [...], "context": {...}},
     "request_id": ..., "suggested_action": ...}

Validation failures surface the first field message as ``error.message``
so bot clients can show it verbatim (e.g. "Resolution notes must be at
least 20 characters long."). 5xx bodies are scrubbed in production.
"""

import logging
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from support_service.api.schemas.errors import ErrorCode, ErrorDetail, FieldError
from support_service.config.settings import get_settings
from support_service.domain.exceptions import AppError

logger = logging.getLogger(__name__)

# Replacements for pydantic's built-in wording, keyed by error type
_PLAIN_MESSAGES = {
    "missing": "This field is required",
    "string_type": "Must be a valid string",
    "int_type": "Must be a valid integer",
    "int_parsing": "Must be a valid integer",
    "float_type": "Must be a valid number",
    "bool_type": "Must be true or false",
    "uuid_parsing": "Must be a valid UUID",
    "enum": "Must be one of the allowed values",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or str(uuid.uuid4())


def _caller(request: Request) -> dict[str, Any]:
    user = getattr(request.state, "user", None)
    return {"user_id": str(user.id), "tenant_id": user.tenant_id} if user else {}


def _envelope(
    request: Request,
    status_code: int,
    code: ErrorCode,
    message: str,
    details: Optional[list[FieldError]] = None,
    context: Optional[dict[str, Any]] = None,
    suggested_action: Optional[str] = None,
    is_production: bool = False,
) -> JSONResponse:
    if is_production and status_code >= 500:
        message = "An internal error occurred. Please try again later."
        context = None

    error = ErrorDetail(code=code, message=message, details=details, context=context)
    content: dict[str, Any] = {
        "error": error.model_dump(mode="json", exclude_none=True),
        "request_id": _request_id(request),
    }
    if suggested_action:
        content["suggested_action"] = suggested_action
    return JSONResponse(status_code=status_code, content=content)


def _log(request: Request, error: Exception, status_code: int) -> None:
    extra = {
        "request_id": _request_id(request),
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
        "error_type": type(error).__name__,
        **_caller(request),
    }
    if status_code >= 500:
        logger.error("Request failed", extra=extra, exc_info=error)
    elif status_code in (401, 403):
        logger.warning("Request rejected", extra={**extra, "reason": str(error)})


def app_error_response(request: Request, exc: AppError, is_production: bool = False) -> JSONResponse:
    """Envelope for ``exc``; middleware calls this directly since handlers do not run for it."""
    _log(request, exc, exc.status_code)
    return _envelope(
        request,
        exc.status_code,
        exc.error_code,
        exc.message,
        context=exc.details or None,
        suggested_action=exc.suggested_action,
        is_production=is_production,
    )


def register_error_handlers(app: FastAPI) -> None:
    settings = get_settings()

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return app_error_response(request, exc, is_production=settings.is_production)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        raw_errors = list(exc.errors())
        detail = ErrorDetail.from_validation_error(raw_errors)
        for field_error, raw in zip(detail.details or [], raw_errors):
            plain = _PLAIN_MESSAGES.get(raw.get("type", ""))
            if plain:
                field_error.message = plain

        logger.info(
            "Request validation failed",
            extra={"request_id": _request_id(request), "path": request.url.path, "fields": len(raw_errors)},
        )
        return _envelope(
            request,
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.VALIDATION_ERROR,
            detail.details[0].message if detail.details else detail.message,
            details=detail.details,
            suggested_action="Check the request fields and try again",
        )

    @app.exception_handler(PydanticValidationError)
    async def handle_model_validation(request: Request, exc: PydanticValidationError) -> JSONResponse:
        """Models built inside a route (e.g. a path id merged into a body) failing validation."""
        detail = ErrorDetail.from_validation_error(exc.errors())
        return _envelope(
            request,
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.VALIDATION_ERROR,
            detail.details[0].message if detail.details else detail.message,
            details=detail.details,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        _log(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return _envelope(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
            f"An unexpected error occurred: {exc}",
            context={"exception_type": type(exc).__name__},
            suggested_action="Try again later",
            is_production=settings.is_production,
        )
