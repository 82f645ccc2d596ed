# src/support_service/interfaces/repository.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Persistence contract shared by the conversation, agent and issue stores."""

    @abstractmethod
    async def get(self, id: UUID) -> T | None: ...

    @abstractmethod
    async def get_many(self, skip: int = 0, limit: int = 100, **filters: Any) -> Sequence[T]: ...

    @abstractmethod
    async def create(self, entity: T) -> T:
        """Add and flush; generated columns are populated on return."""

    @abstractmethod
    async def save(self, entity: T) -> T:
        """Flush changes to an entity already loaded in the session."""

    @abstractmethod
    async def delete(self, id: UUID) -> bool:
        """False when nothing matched ``id``."""
