"""Caching implementations."""

from support_service.infrastructure.cache.cache import (
    ICache,
    RedisCache,
    InMemoryCache,
    get_cache,
)
from support_service.infrastructure.cache.redis import (
    RedisManager,
    get_redis_manager,
    close_redis,
)
from support_service.infrastructure.cache.tags import (
    CacheKeys,
    CacheTags,
    TaggedCache,
    discard_invalidations,
    flush_invalidations,
    get_tagged_cache,
    reset_tagged_cache,
)

__all__ = [
    # Cache abstractions
    "ICache",
    "RedisCache",
    "InMemoryCache",
    "get_cache",
    # Redis manager
    "RedisManager",
    "get_redis_manager",
    "close_redis",
    # Tags
    "CacheKeys",
    "CacheTags",
    "TaggedCache",
    "discard_invalidations",
    "flush_invalidations",
    "get_tagged_cache",
    "reset_tagged_cache",
]
