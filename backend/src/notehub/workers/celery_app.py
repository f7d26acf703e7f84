"""Celery application for NoteHub background jobs.

Run a worker with beat:
    celery -A notehub.workers.celery_app worker --beat --loglevel=INFO
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from ..config import get_settings
from ..observability.logging_config import configure_logging

settings = get_settings()

celery_app = Celery(
    "notehub",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["notehub.reconciliation.tasks"],
)

celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
)

celery_app.conf.beat_schedule = {
    "reconciliation-sweep-nightly": {
        "task": "reconciliation.sweep",
        "schedule": crontab(hour=3, minute=0),
        "options": {
            "expires": 3600,  # Skip if not picked up within an hour
        },
    },
}


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Worker logs use the same JSON lines as the API instead of Celery's own handlers."""
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
