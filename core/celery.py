from celery import Celery
from kombu import Queue

from core.config import settings

celery_app = Celery(
    "biteandco_orders",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["tasks.email_tasks", "tasks.rating_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=24 * 60 * 60,
    timezone="Asia/Jakarta",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    broker_connection_retry_on_startup=True,
    # Slow SMTP must not delay rating reconciliation
    task_queues=(Queue("emails"), Queue("ratings")),
    task_default_queue="emails",
    task_routes={
        "tasks.email_tasks.*": {"queue": "emails"},
        "tasks.rating_tasks.*": {"queue": "ratings"},
    },
    # Tests run tasks inline instead of publishing to Redis
    task_always_eager=settings.TESTING,
    task_eager_propagates=settings.TESTING,
)
