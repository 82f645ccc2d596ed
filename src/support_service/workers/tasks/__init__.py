"""Background tasks. Importing this package registers them with Celery."""

from support_service.workers.tasks.conversation_tasks import (
    process_completed_conversations,
    process_single_conversation,
)

__all__ = [
    "process_completed_conversations",
    "process_single_conversation",
]
