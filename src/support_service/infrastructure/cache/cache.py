# src/support_service/infrastructure/cache/cache.py
"""
Key/value backends for ``TaggedCache``.

Redis is used when ``REDIS_URL`` is set and reachable; otherwise every
process keeps its own in-memory LRU. Values are JSON-compatible (DTOs are
stored through ``model_dump(mode="json")``).
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from threading import Lock
from typing import Any, Generic, Optional, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from support_service.infrastructure.cache.redis import get_redis_manager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ICache(ABC, Generic[T]):
    def __init__(self, namespace: str = ""):
        self.namespace = namespace

    def _make_key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    @abstractmethod
    async def get(self, key: str) -> T | None:
        """None when the key is missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: T, ttl: int | None = None) -> bool:
        """Store ``value``; ``ttl`` in seconds, None keeps it until evicted."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """True when an entry was removed."""

    @abstractmethod
    async def add_members(self, key: str, *members: str) -> None:
        """Add ``members`` to the set at ``key``."""

    @abstractmethod
    async def pop_members(self, key: str) -> list[str]:
        """Remove the set at ``key`` and return what it held, in one step."""

    @abstractmethod
    async def delete_many(self, *keys: str) -> int:
        """Remove ``keys``; returns how many existed."""


class RedisCache(ICache[T]):
    """
    Shared cache for every API worker.

    Redis errors are logged and reported as a miss so a cache outage never
    fails a request.
    """

    def __init__(self, namespace: str = ""):
        super().__init__(namespace)
        self._redis: Optional[Redis] = None

    async def _client(self) -> Redis | None:
        if self._redis is None:
            self._redis = (await get_redis_manager()).get_client()
        return self._redis

    async def get(self, key: str) -> T | None:
        redis = await self._client()
        if redis is None:
            return None
        try:
            raw = await redis.get(self._make_key(key))
            return None if raw is None else json.loads(raw)
        except (RedisError, ValueError) as e:
            logger.error("Cache read failed", extra={"key": key, "error": str(e)})
            return None

    async def set(self, key: str, value: T, ttl: int | None = None) -> bool:
        redis = await self._client()
        if redis is None:
            return False
        try:
            await redis.set(self._make_key(key), json.dumps(value), ex=ttl)
            return True
        except RedisError as e:
            logger.error("Cache write failed", extra={"key": key, "error": str(e)})
            return False

    async def delete(self, key: str) -> bool:
        redis = await self._client()
        if redis is None:
            return False
        try:
            return await redis.delete(self._make_key(key)) > 0
        except RedisError as e:
            logger.error("Cache delete failed", extra={"key": key, "error": str(e)})
            return False

    async def add_members(self, key: str, *members: str) -> None:
        redis = await self._client()
        if redis is None or not members:
            return
        try:
            await redis.sadd(self._make_key(key), *members)
        except RedisError as e:
            logger.error("Cache set update failed", extra={"key": key, "error": str(e)})

    async def pop_members(self, key: str) -> list[str]:
        redis = await self._client()
        if redis is None:
            return []
        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.smembers(self._make_key(key))
                pipe.delete(self._make_key(key))
                members, _ = await pipe.execute()
        except RedisError as e:
            logger.error("Cache set read failed", extra={"key": key, "error": str(e)})
            return []
        return list(members)

    async def delete_many(self, *keys: str) -> int:
        redis = await self._client()
        if redis is None or not keys:
            return 0
        try:
            return await redis.delete(*(self._make_key(key) for key in keys))
        except RedisError as e:
            logger.error("Cache delete failed", extra={"keys": list(keys), "error": str(e)})
            return 0


class InMemoryCache(ICache[T]):
    """
    Per-process LRU with optional expiry; also the test backend.

    Sets live apart from the LRU entries and are never evicted.
    """

    def __init__(self, max_size: int = 10000, namespace: str = ""):
        super().__init__(namespace)
        self.max_size = max_size
        self._entries: OrderedDict[str, tuple[Any, Optional[float]]] = OrderedDict()
        self._sets: dict[str, set[str]] = {}
        self._lock = Lock()

    async def get(self, key: str) -> T | None:
        full_key = self._make_key(key)
        with self._lock:
            entry = self._entries.get(full_key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and time.monotonic() > expires_at:
                del self._entries[full_key]
                return None
            self._entries.move_to_end(full_key)
            return value

    async def set(self, key: str, value: T, ttl: int | None = None) -> bool:
        full_key = self._make_key(key)
        expires_at = time.monotonic() + ttl if ttl is not None else None
        with self._lock:
            self._entries.pop(full_key, None)
            if len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[full_key] = (value, expires_at)
        return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(self._make_key(key), None) is not None

    async def add_members(self, key: str, *members: str) -> None:
        with self._lock:
            self._sets.setdefault(self._make_key(key), set()).update(members)

    async def pop_members(self, key: str) -> list[str]:
        with self._lock:
            return list(self._sets.pop(self._make_key(key), ()))

    async def delete_many(self, *keys: str) -> int:
        with self._lock:
            return sum(self._entries.pop(self._make_key(key), None) is not None for key in keys)


_memory_caches: dict[str, InMemoryCache] = {}


async def get_cache(namespace: str = "") -> ICache:
    """Redis when available, else the process-wide in-memory cache for ``namespace``."""
    if (await get_redis_manager()).is_available:
        return RedisCache(namespace=namespace)

    if namespace not in _memory_caches:
        logger.warning("Redis unavailable, caching in process memory", extra={"namespace": namespace})
        _memory_caches[namespace] = InMemoryCache(namespace=namespace)
    return _memory_caches[namespace]
