# src/support_service/infrastructure/database/connection.py
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from support_service.config.settings import Settings
from support_service.infrastructure.cache.tags import discard_invalidations, flush_invalidations

logger = logging.getLogger(__name__)


def engine_options(url: str, settings: Settings) -> Dict[str, Any]:
    """
    Keyword arguments for ``create_async_engine``.

    aiosqlite rejects pool sizing, and an in-memory SQLite database only
    survives on a single shared connection.
    """
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
        "pool_pre_ping": True,
    }


class DatabaseManager:
    """
    Owns the async engine and hands out unit-of-work sessions.

    The API process uses the module-level ``db``; each Celery task builds
    its own manager because tasks run in a fresh event loop.

    Usage:
        await db.connect(settings)
        async with db.session() as session:
            await ConversationService(session, ...).escalate(...)
        await db.disconnect()
    """

    def __init__(self):
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self, settings: Settings, create_tables: bool = False) -> None:
        """
        Open the engine for ``settings.database_url``.

        With ``create_tables`` SQLite databases get their schema from the
        models; PostgreSQL is left to Alembic.
        """
        if self._engine is not None:
            raise RuntimeError("Database already connected")
        if not settings.database_url:
            raise RuntimeError("Database not configured")

        url = settings.database_url.get_secret_value()
        self._engine = create_async_engine(url, echo=settings.db_echo_sql, **engine_options(url, settings))
        self._session_factory = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)
        logger.info("Database connected", extra={"dialect": self._engine.dialect.name})

        if create_tables and self._engine.dialect.name == "sqlite":
            await self.create_all()

    async def create_all(self) -> None:
        if self._engine is None:
            raise RuntimeError("Database not connected")

        from support_service.infrastructure.database import models  # noqa: F401  registers tables

        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database tables created")

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Commit on clean exit, roll back and re-raise otherwise.

        Cache tags queued on the session are invalidated after the commit
        and dropped on rollback.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not connected")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_invalidations(session)
                raise
            await flush_invalidations(session)

    def get_pool_stats(self) -> Dict[str, Any]:
        if self._engine is None:
            raise RuntimeError("Database not connected")

        pool = self._engine.pool
        stats: Dict[str, Any] = {"pool": type(pool).__name__}
        for name in ("size", "checkedin", "checkedout", "overflow"):
            method = getattr(pool, name, None)
            if callable(method):
                stats[name] = method()
        return stats

    async def health_check(self) -> Dict[str, Any]:
        """Round-trip ``SELECT 1`` and return pool stats; raises when unreachable."""
        if self._engine is None:
            raise RuntimeError("Database not connected")
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.error("Database health check failed", exc_info=True)
            raise
        return self.get_pool_stats()

    @property
    def is_connected(self) -> bool:
        return self._engine is not None


db = DatabaseManager()
