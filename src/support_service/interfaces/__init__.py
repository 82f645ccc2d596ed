# src/support_service/interfaces/__init__.py
from .notifier import INotifier
from .repository import IRepository

__all__ = [
    "INotifier",
    "IRepository",
]
