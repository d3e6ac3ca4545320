"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "catalogsync",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["workers.catalog"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "workers.catalog.*": {"queue": "catalog"},
    },
    # ── Celery Beat Schedule ─────────────────────────────────────────
    beat_schedule={
        # Fill derived name columns for rows written outside the push path
        # (manual SQL fixes, imports).
        "backfill-normalized-fields-nightly": {
            "task": "workers.catalog.backfill_normalized_fields",
            "schedule": crontab(hour=2, minute=15),
            "kwargs": {"force": False},
            "options": {"queue": "catalog"},
        },
    },
)
