"""Configuration management for the support service."""

from support_service.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
