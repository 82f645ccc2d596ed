"""Logging configuration."""

from support_service.infrastructure.observability.logging import (
    configure_logging,
    get_logger,
    mask_pii_in_dict,
    mask_pii_value,
)

__all__ = ["configure_logging", "get_logger", "mask_pii_in_dict", "mask_pii_value"]
