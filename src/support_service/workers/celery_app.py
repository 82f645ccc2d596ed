"""
Celery application.

Insight analysis runs on its own ``insights`` queue so a backlog of
completed conversations never delays other work. Beat enqueues the batch
job every 15 minutes.

    celery -A support_service.workers.celery_app worker -Q insights,support-service
    celery -A support_service.workers.celery_app beat
"""

import logging
import time

from celery import Celery, Task
from celery.schedules import crontab
from celery.signals import task_postrun, task_prerun
from kombu import Queue

from support_service.config.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

INSIGHTS_QUEUE = "insights"
TASKS_MODULE = "support_service.workers.tasks.conversation_tasks"

celery_app = Celery(
    "support_service",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[TASKS_MODULE],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_default_queue=settings.celery_task_default_queue,
    task_default_retry_delay=settings.celery_task_default_retry_delay,
    task_time_limit=settings.celery_task_time_limit,
    task_soft_time_limit=settings.celery_task_soft_time_limit,
    # A worker killed mid-analysis leaves the conversation for the next run
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=settings.celery_worker_prefetch_multiplier,
    worker_max_tasks_per_child=settings.celery_worker_max_tasks_per_child,
    result_expires=3600,
    task_queues=(
        Queue(settings.celery_task_default_queue),
        Queue(INSIGHTS_QUEUE),
    ),
    task_routes={f"{TASKS_MODULE}.*": {"queue": INSIGHTS_QUEUE}},
    beat_schedule={
        "process-completed-conversations": {
            "task": f"{TASKS_MODULE}.process_completed_conversations",
            "schedule": crontab(minute="*/15"),
        },
    },
)


class BaseTask(Task):
    """Exponential backoff with jitter on autoretry."""

    max_retries = settings.celery_task_max_retries
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error("Task failed", extra={"task": self.name, "task_id": task_id, "error": str(exc)})

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(
            "Retrying task",
            extra={"task": self.name, "task_id": task_id, "retry": self.request.retries, "error": str(exc)},
        )


celery_app.Task = BaseTask

_started: dict[str, float] = {}


@task_prerun.connect
def log_task_start(task_id, task, **kwargs):
    _started[task_id] = time.perf_counter()
    logger.info("Task started", extra={"task": task.name, "task_id": task_id})


@task_postrun.connect
def log_task_end(task_id, task, state=None, **kwargs):
    started = _started.pop(task_id, None)
    duration_ms = round((time.perf_counter() - started) * 1000, 2) if started is not None else None
    logger.info("Task finished", extra={"task": task.name, "task_id": task_id, "state": state, "duration_ms": duration_ms})


__all__ = ["celery_app", "BaseTask", "INSIGHTS_QUEUE"]
