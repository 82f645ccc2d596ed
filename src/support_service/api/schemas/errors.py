"""Error codes and the body rendered under the ``error`` key of every failure."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """
    Machine-readable failure codes.

    Services attach one to a failed Result; ``raise_for_result`` maps it to
    the exception class (and so the HTTP status) used for the response.
    """

    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_PARAMETER = "INVALID_PARAMETER"

    # 401
    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    WEBHOOK_SIGNATURE_INVALID = "WEBHOOK_SIGNATURE_INVALID"

    # 403
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    RESOURCE_ACCESS_DENIED = "RESOURCE_ACCESS_DENIED"

    # 404
    NOT_FOUND = "NOT_FOUND"
    CONVERSATION_NOT_FOUND = "CONVERSATION_NOT_FOUND"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    ISSUE_NOT_FOUND = "ISSUE_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # 409
    CONFLICT = "CONFLICT"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
    AGENT_UNAVAILABLE = "AGENT_UNAVAILABLE"
    """Agent is offline, on break or at capacity."""

    # 429
    RATE_LIMITED = "RATE_LIMITED"

    # 5xx
    INTERNAL_ERROR = "INTERNAL_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    """Bot relay or WhatsApp Graph API call failed (502)."""
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class FieldError(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    field: str = Field(..., examples=["notes", "attachments.0.url"])
    message: str = Field(..., examples=["Resolution notes must be at least 20 characters long."])
    code: str | None = Field(default=None, examples=["VALUE_ERROR", "MISSING"])
    value: Any | None = Field(default=None, description="Offending input when it is a plain scalar")


class ErrorDetail(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: ErrorCode = Field(..., examples=[ErrorCode.CONVERSATION_NOT_FOUND])
    message: str = Field(..., examples=["Conversation not found"])
    details: list[FieldError] | None = None
    context: dict[str, Any] | None = Field(default=None, examples=[{"messages": ["Conversation not found"]}])

    @classmethod
    def from_validation_error(cls, validation_errors: list[dict[str, Any]]) -> "ErrorDetail":
        """One FieldError per pydantic error, located without FastAPI's body/query/path prefix."""
        field_errors = []
        for err in validation_errors:
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            field_errors.append(
                FieldError(
                    field=".".join(loc) or "__root__",
                    message=_clean_validation_message(err.get("msg", "Validation error")),
                    code=err.get("type", "VALIDATION_ERROR").upper(),
                    value=_scalar_or_none(err.get("input")),
                )
            )
        return cls(code=ErrorCode.VALIDATION_ERROR, message="Request validation failed", details=field_errors)


def _clean_validation_message(message: str) -> str:
    # pydantic prefixes messages from our validators with "Value error, "
    return message.removeprefix("Value error, ")


def _scalar_or_none(value: Any) -> Any:
    return value if value is None or isinstance(value, (str, int, float, bool)) else None
