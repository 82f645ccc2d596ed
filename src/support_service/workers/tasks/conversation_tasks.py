"""
Conversation insight tasks.

``process_completed_conversations`` runs every 15 minutes from Celery Beat
and analyzes completed conversations that have no insight yet.
``process_single_conversation`` analyzes one conversation on demand.

Each task runs its coroutine in a fresh event loop with its own database
connection, disposed when the task ends.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, TypeVar
from uuid import UUID

from celery import Task

from support_service.config.settings import get_settings
from support_service.infrastructure.database import DatabaseManager
from support_service.services.insights import InsightProcessor
from support_service.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _with_processor(work: Callable[[InsightProcessor], Awaitable[T]]) -> T:
    settings = get_settings()
    database = DatabaseManager()
    await database.connect(settings)
    try:
        async with database.session() as session:
            return await work(InsightProcessor(session, settings=settings))
    finally:
        await database.disconnect()


@celery_app.task(
    bind=True,
    name="support_service.workers.tasks.conversation_tasks.process_completed_conversations",
    autoretry_for=(Exception,),
)
def process_completed_conversations(self: Task, batch_size: int | None = None) -> Dict[str, Any]:
    """
    Analyze completed conversations without insights.

    Returns:
        Dictionary with ``found``, ``processed`` and ``errors`` counts.
    """
    logger.info("Starting insight processing", extra={"task_id": self.request.id})
    stats = asyncio.run(_with_processor(lambda processor: processor.process_completed(batch_size)))
    return {**stats, "status": "completed"}


@celery_app.task(
    bind=True,
    name="support_service.workers.tasks.conversation_tasks.process_single_conversation",
    autoretry_for=(Exception,),
)
def process_single_conversation(self: Task, conversation_id: str) -> Dict[str, Any]:
    processed = asyncio.run(
        _with_processor(lambda processor: processor.process_single(UUID(conversation_id)))
    )
    return {"conversation_id": conversation_id, "processed": processed}
