"""Celery application configuration."""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from app.core.config import settings
from app.core.logging import setup_logging

celery_app = Celery(
    "portguard",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.tasks.alerts",
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
    task_time_limit=300,  # 5 minutes, also the deadline of one alert run
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Scheduled tasks (Celery Beat)
celery_app.conf.beat_schedule = {
    "check-alerts": {
        "task": "app.tasks.alerts.check_all_alerts",
        "schedule": settings.ALERT_CHECK_INTERVAL_SECONDS,  # Every 5 minutes by default
        # A run that could not start before the next tick is dropped, not stacked
        "options": {"expires": settings.ALERT_CHECK_INTERVAL_SECONDS},
    },
}


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application log format in the worker instead of Celery's."""
    setup_logging()
