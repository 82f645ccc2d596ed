"""
Errors raised across the API boundary.

Services report business failures as a failed ``Result``; routes turn those
into the classes below through ``raise_for_result``. Auth dependencies,
clients and middleware raise them directly. Each class carries the HTTP
status and ``ErrorCode`` used by the error envelope.

Usage:
    from support_service.domain.exceptions import NotFound

    raise NotFound("Conversation not found", details={"reference": "whatsapp:447700900123"})
"""

from typing import Any, Optional

from support_service.api.schemas.errors import ErrorCode


class AppError(Exception):
    """
    Root of the hierarchy.

    ``message`` and ``suggested_action`` fall back to the class defaults;
    ``error_code`` can be overridden per instance so a generic class (e.g.
    NotFound) can still report CONVERSATION_NOT_FOUND.
    """

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500
    default_message: str = "An unexpected error occurred"
    default_suggested_action: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        suggested_action: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
    ):
        self.message = message or self.default_message
        self.details = details or {}
        self.suggested_action = suggested_action or self.default_suggested_action
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code.value}, {self.status_code}, {self.message!r})"


# 401


class AuthError(AppError):
    status_code = 401
    error_code = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required"
    default_suggested_action = "Send a bearer token in the Authorization header"


class TokenExpired(AuthError):
    error_code = ErrorCode.TOKEN_EXPIRED
    default_message = "Access token has expired"
    default_suggested_action = "Sign in again to get a new token"


class TokenInvalid(AuthError):
    error_code = ErrorCode.TOKEN_INVALID
    default_message = "Access token is invalid"
    default_suggested_action = "Sign in again to get a new token"


class WebhookVerificationFailed(AuthError):
    """Signature or timestamp check on an inbound webhook failed."""

    error_code = ErrorCode.WEBHOOK_SIGNATURE_INVALID
    default_message = "Unauthorized"
    default_suggested_action = None


# 403


class InsufficientPermissions(AppError):
    """The caller's role does not grant the permission a route requires."""

    status_code = 403
    error_code = ErrorCode.INSUFFICIENT_PERMISSIONS
    default_message = "Your role does not allow this action"
    default_suggested_action = "Ask a tenant owner to grant the required role"


class ResourceAccessDenied(AppError):
    """The caller may use the endpoint but not this particular record."""

    status_code = 403
    error_code = ErrorCode.RESOURCE_ACCESS_DENIED
    default_message = "You cannot act on this record"
    default_suggested_action = None


# 400


class ValidationError(AppError):
    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR
    default_message = "Request validation failed"
    default_suggested_action = "Check the request fields and try again"


class InvalidRequest(AppError):
    status_code = 400
    error_code = ErrorCode.INVALID_REQUEST
    default_message = "Invalid request"
    default_suggested_action = "Check the request and try again"


# 404 / 409


class NotFound(AppError):
    status_code = 404
    error_code = ErrorCode.NOT_FOUND
    default_message = "Not found"
    default_suggested_action = "Check the identifier and try again"


class AlreadyExists(AppError):
    status_code = 409
    error_code = ErrorCode.DUPLICATE_RESOURCE
    default_message = "Already exists"
    default_suggested_action = None


class ConflictError(AppError):
    """The record changed state (accepted, completed, transferred) since it was read."""

    status_code = 409
    error_code = ErrorCode.CONFLICT
    default_message = "The record is not in a state that allows this action"
    default_suggested_action = "Reload and try again"


# 5xx


class ExternalServiceError(AppError):
    """Bot relay or WhatsApp Graph API call failed."""

    status_code = 502
    error_code = ErrorCode.EXTERNAL_SERVICE_ERROR
    default_message = "Message delivery service failed"
    default_suggested_action = "Try sending the message again shortly"


class ServiceUnavailable(AppError):
    status_code = 503
    error_code = ErrorCode.SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"
    default_suggested_action = "Try again in a few moments"
