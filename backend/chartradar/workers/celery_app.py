"""
Celery application configuration
"""
from celery import Celery
from celery.schedules import crontab

from chartradar.core.config import settings

celery_app = Celery(
    "chart_radar",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "chartradar.workers.tasks",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=3600,  # backfills over all genres are long
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Queue routing
    task_routes={
        "chartradar.workers.tasks.toptracker_backfill_task": {"queue": "backfill"},
        "chartradar.workers.tasks.toptracker_daily_task": {"queue": "backfill"},
    },
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Discovery + ingest + normalize + score, daily at 05:00 UTC
    "daily-pipeline": {
        "task": "chartradar.workers.tasks.run_pipeline_task",
        "schedule": crontab(minute="0", hour="5"),
    },
    # Top Tracker yesterday + today for the configured genres
    "toptracker-daily": {
        "task": "chartradar.workers.tasks.toptracker_daily_task",
        "schedule": crontab(minute="30", hour="5"),
        "kwargs": {"rescore": True},
    },
}
