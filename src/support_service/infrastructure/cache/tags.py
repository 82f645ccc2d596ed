# src/support_service/infrastructure/cache/tags.py
"""
Tag-based invalidation on top of ICache.

Every cached entry can carry tags; invalidating a tag drops all entries
stored under it. The tag index is a backend set (``tag:{name}``) updated
with single add and pop operations; the in-memory LRU never evicts it.

Commands do not invalidate directly: they queue tags on their session with
``invalidate_on_commit`` and the session owner calls
``flush_invalidations`` once the transaction has committed.
"""
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from support_service.config.settings import get_settings
from support_service.infrastructure.cache.cache import ICache, get_cache

logger = logging.getLogger(__name__)

PENDING_TAGS_KEY = "pending_cache_tags"


class CacheTags:
    AGENTS = "agents"
    CONVERSATIONS = "conversations"
    TRANSFER = "transfer"
    DASHBOARD = "dashboard"
    ISSUES = "issues"
    PREFERENCES = "preferences"


class CacheKeys:
    AVAILABLE_AGENTS = "available-agents"
    ALL_AGENTS = "all-agents"
    ESCALATED_CONVERSATIONS = "escalated-conversations"
    DASHBOARD_METRICS = "dashboard-metrics"
    ISSUE_DASHBOARD_METRICS = "issue-dashboard-metrics"

    @staticmethod
    def issue_performance(days: int) -> str:
        return f"issue-performance:{days}"

    @staticmethod
    def issue_recent_activity(count: int) -> str:
        return f"issue-recent-activity:{count}"

    @staticmethod
    def conversation_performance(days: int) -> str:
        return f"conversation-performance:{days}"

    @staticmethod
    def transfer_eligible(conversation_id: str, current_agent_id: str | None) -> str:
        return f"transfer-eligible:{conversation_id}:{current_agent_id or '-'}"

    @staticmethod
    def issue_details(issue_id: str) -> str:
        return f"issue-details:{issue_id}"


class TaggedCache:
    """
    Cache facade with ``get_or_set`` and tag invalidation.

    Example:
        >>> agents = await cache.get_or_set(
        ...     CacheKeys.AVAILABLE_AGENTS,
        ...     load_agents,
        ...     tags=[CacheTags.AGENTS],
        ...     ttl=120,
        ... )
        >>> cache.invalidate_on_commit(session, CacheTags.AGENTS)
    """

    def __init__(self, backend: ICache, default_ttl: int = 300):
        self.backend = backend
        self.default_ttl = default_ttl

    @staticmethod
    def _tag_key(tag: str) -> str:
        return f"tag:{tag}"

    async def get(self, key: str) -> Any | None:
        return await self.backend.get(key)

    async def set(self, key: str, value: Any, tags: Iterable[str] = (), ttl: int | None = None) -> None:
        await self.backend.set(key, value, ttl=ttl or self.default_ttl)
        for tag in tags:
            await self.backend.add_members(self._tag_key(tag), key)

    async def get_or_set(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        tags: Iterable[str] = (),
        ttl: int | None = None,
    ) -> Any:
        """Return the cached value for ``key``, loading and storing it on a miss."""
        cached = await self.backend.get(key)
        if cached is not None:
            return cached

        value = await loader()
        if value is not None:
            await self.set(key, value, tags=tags, ttl=ttl)
        return value

    async def delete(self, key: str) -> None:
        await self.backend.delete(key)

    async def invalidate_tags(self, *tags: str) -> int:
        """Drop every entry stored under any of ``tags``. Returns the number of keys removed."""
        removed = 0
        for tag in tags:
            members = await self.backend.pop_members(self._tag_key(tag))
            if members:
                removed += await self.backend.delete_many(*members)
        if removed:
            logger.debug("Invalidated cache tags", extra={"tags": list(tags), "removed": removed})
        return removed

    def invalidate_on_commit(self, session: AsyncSession, *tags: str) -> None:
        """Queue ``tags`` for invalidation once ``session`` commits."""
        pending = session.info.setdefault(PENDING_TAGS_KEY, {})
        _, queued = pending.setdefault(id(self), (self, set()))
        queued.update(tags)


async def flush_invalidations(session: AsyncSession) -> int:
    """Invalidate everything queued on ``session``. Call after a successful commit."""
    pending = session.info.pop(PENDING_TAGS_KEY, {})
    removed = 0
    for cache, tags in pending.values():
        removed += await cache.invalidate_tags(*sorted(tags))
    return removed


def discard_invalidations(session: AsyncSession) -> None:
    session.info.pop(PENDING_TAGS_KEY, None)


_tagged_cache: Optional[TaggedCache] = None


async def get_tagged_cache() -> TaggedCache:
    """Process-wide TaggedCache over Redis, or the in-memory cache without Redis."""
    global _tagged_cache

    if _tagged_cache is None:
        settings = get_settings()
        backend = await get_cache(namespace=settings.cache_key_prefix)
        _tagged_cache = TaggedCache(backend, default_ttl=settings.cache_default_ttl)
    return _tagged_cache


def reset_tagged_cache() -> None:
    global _tagged_cache
    _tagged_cache = None
