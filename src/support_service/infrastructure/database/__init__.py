"""Database connection and models."""
from .connection import DatabaseManager, db
from .base_model import BaseModel, TenantMixin, utcnow

__all__ = [
    "DatabaseManager",
    "db",
    "BaseModel",
    "TenantMixin",
    "utcnow",
]
