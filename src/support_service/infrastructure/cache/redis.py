# src/support_service/infrastructure/cache/redis.py
"""
Process-wide Redis client.

Redis is optional: when ``REDIS_URL`` is unset or the first ping fails the
manager reports itself unavailable and the cache falls back to memory.
"""
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from support_service.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class RedisManager:
    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._client: Optional[Redis] = None

    async def initialize(self) -> None:
        if not self._settings.redis_url:
            logger.info("Redis not configured")
            return

        client = Redis.from_url(
            self._settings.redis_url.get_secret_value(),
            decode_responses=True,
            max_connections=10,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error("Redis unreachable, continuing without it", extra={"error": str(e)})
            await client.aclose()
            return

        self._client = client
        logger.info("Redis connected")

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except RedisError as e:
            logger.error("Error closing Redis client", extra={"error": str(e)})
        self._client = None

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as e:
            logger.error("Redis ping failed", extra={"error": str(e)})
            return False

    def get_client(self) -> Optional[Redis]:
        return self._client

    @property
    def is_available(self) -> bool:
        return self._client is not None


_redis_manager: Optional[RedisManager] = None


async def get_redis_manager() -> RedisManager:
    global _redis_manager

    if _redis_manager is None:
        _redis_manager = RedisManager()
        await _redis_manager.initialize()
    return _redis_manager


async def close_redis() -> None:
    global _redis_manager

    if _redis_manager is not None:
        await _redis_manager.close()
        _redis_manager = None
