"""
Celery application for background menu jobs.

Broker and result backend are the same Redis instance as the cache.
Start a worker with:

    celery -A takeaway.celery_worker worker --loglevel=info
"""

from celery import Celery

from takeaway.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "takeaway",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["takeaway.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
    timezone="UTC",

    # CELERY_TASK_ALWAYS_EAGER=true runs tasks in the calling process
    task_always_eager=settings.celery_task_always_eager,
    task_eager_propagates=True,

    # Exports rewrite one workbook; run them one at a time per worker
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=3600,
    broker_connection_retry_on_startup=True,
)
