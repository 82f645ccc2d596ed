"""
Tagged success / failure wrapper returned by every command and query.

Handlers never let business failures escape as exceptions. They return
``Result.failure(...)`` with one or more human readable messages and an
optional ErrorCode that the API layer uses to choose a status code.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from support_service.api.schemas.errors import ErrorCode
from support_service.domain.exceptions import (
    AlreadyExists,
    AppError,
    AuthError,
    ConflictError,
    ExternalServiceError,
    InvalidRequest,
    NotFound,
    ResourceAccessDenied,
    ValidationError,
)

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    succeeded: bool
    data: Optional[T] = None
    messages: list[str] = field(default_factory=list)
    error_code: Optional[ErrorCode] = None

    @classmethod
    def success(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(succeeded=True, data=data)

    @classmethod
    def failure(cls, *messages: str, code: Optional[ErrorCode] = None) -> "Result[T]":
        return cls(succeeded=False, messages=list(messages), error_code=code)

    @property
    def failed(self) -> bool:
        return not self.succeeded

    @property
    def error_message(self) -> str:
        return ", ".join(self.messages)


_ERROR_CLASSES: dict[ErrorCode, type[AppError]] = {
    ErrorCode.VALIDATION_ERROR: ValidationError,
    ErrorCode.INVALID_PARAMETER: ValidationError,
    ErrorCode.UNAUTHORIZED: AuthError,
    ErrorCode.RESOURCE_ACCESS_DENIED: ResourceAccessDenied,
    ErrorCode.NOT_FOUND: NotFound,
    ErrorCode.CONVERSATION_NOT_FOUND: NotFound,
    ErrorCode.AGENT_NOT_FOUND: NotFound,
    ErrorCode.ISSUE_NOT_FOUND: NotFound,
    ErrorCode.USER_NOT_FOUND: NotFound,
    ErrorCode.CONFLICT: ConflictError,
    ErrorCode.AGENT_UNAVAILABLE: ConflictError,
    ErrorCode.DUPLICATE_RESOURCE: AlreadyExists,
    ErrorCode.EXTERNAL_SERVICE_ERROR: ExternalServiceError,
    ErrorCode.INTERNAL_ERROR: AppError,
}


def raise_for_result(result: Result[T]) -> Optional[T]:
    """
    Return the payload of a successful Result or raise the matching AppError.

    Failures without an error code are treated as bad requests.
    """
    if result.succeeded:
        return result.data

    code = result.error_code or ErrorCode.INVALID_REQUEST
    error_cls = _ERROR_CLASSES.get(code, InvalidRequest)
    raise error_cls(
        result.error_message or None,
        details={"messages": result.messages},
        error_code=code,
    )
