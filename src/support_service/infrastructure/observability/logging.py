"""
Logging setup.

structlog renders structlog loggers and stdlib ``logging`` records alike,
so modules use either ``get_logger(__name__)`` or
``logging.getLogger(__name__)`` with ``extra=``. Customer chats carry phone
numbers, e-mail addresses and sometimes card or social security numbers, so
string values are masked before rendering unless ``LOG_PII_MASKING_ENABLED``
is off.
"""
import logging
import re
import sys
from typing import Any, Optional

import structlog

from support_service.api.middleware.request_id import add_request_id_to_log
from support_service.config.settings import get_settings

_MASKS = (
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "***@***"),
    (re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b"), "****-****-****-****"),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "***-**-****"),
    (re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"), "***.***.***.***"),
    (re.compile(r"(?<![\w-])(\+?)\d[\d\s().-]{7,}\d\b"), r"\1***"),
)

# Identifiers that look like numbers but are never personal data
_PASSTHROUGH_KEYS = {
    "timestamp",
    "request_id",
    "correlation_id",
    "level",
    "logger",
    "conversation_id",
    "issue_id",
    "link_id",
}

# Secrets never written, whatever their shape
_REDACTED_KEYS = {"authorization", "access_token", "token", "verify_token", "signature", "secret"}


def mask_pii_value(value: Any) -> Any:
    """
    Example:
        >>> mask_pii_value("Reply sent to +447700900123 (ada@example.com)")
        'Reply sent to +*** (***@***)'
    """
    if not isinstance(value, str):
        return value
    for pattern, replacement in _MASKS:
        value = pattern.sub(replacement, value)
    return value


def mask_pii_in_dict(data: dict) -> dict:
    masked: dict = {}
    for key, value in data.items():
        if key in _PASSTHROUGH_KEYS:
            masked[key] = value
        elif key.lower() in _REDACTED_KEYS:
            masked[key] = "[REDACTED]"
        elif isinstance(value, dict):
            masked[key] = mask_pii_in_dict(value)
        elif isinstance(value, (list, tuple)):
            masked[key] = [mask_pii_in_dict(item) if isinstance(item, dict) else mask_pii_value(item) for item in value]
        else:
            masked[key] = mask_pii_value(value)
    return masked


def pii_masking_processor(logger_obj: Any, method_name: str, event_dict: dict) -> dict:
    if get_settings().log_pii_masking_enabled:
        return mask_pii_in_dict(event_dict)
    return event_dict


def configure_logging() -> None:
    """Route structlog and stdlib logging through one stdout handler (JSON or console)."""
    settings = get_settings()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_request_id_to_log,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        pii_masking_processor,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)

    formatter = structlog.stdlib.ProcessorFormatter(
        # ExtraAdder lifts ``extra=`` fields of stdlib records into the event
        foreign_pre_chain=[*shared_processors, structlog.stdlib.ExtraAdder()],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.log_level)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx", "celery.app.trace"):
        logging.getLogger(noisy).setLevel(max(settings.log_level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
