"""Celery application for transaction lifecycle background work.

Start a worker and the beat scheduler with:
    celery -A app.worker worker --beat --loglevel=info
"""

from celery import Celery

from app.config import settings

celery_app = Celery(
    "vendibook_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Redeliver tasks interrupted by a worker crash
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_soft_time_limit=240,
    task_time_limit=300,
    result_expires=3600,
    beat_schedule={
        "expire-stale-bookings": {
            "task": "app.tasks.expire_stale_bookings",
            "schedule": settings.expiry_sweep_interval_minutes * 60.0,
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
