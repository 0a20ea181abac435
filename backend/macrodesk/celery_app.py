"""Celery application: Redis broker, daily macro sync on beat."""
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from macrodesk.config import settings
from macrodesk.logging_config import setup_logging


def parse_cron(expr: str) -> crontab:
    minute, hour, day_of_month, month_of_year, day_of_week = expr.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


celery = Celery(
    "macrodesk",
    broker=settings.CELERY_BROKER_URL,
)

setup_logging()

# ── Serialisation ──
celery.conf.accept_content = ["json"]
celery.conf.task_serializer = "json"
celery.conf.result_serializer = "json"
celery.conf.timezone = "UTC"
celery.conf.enable_utc = True
celery.conf.worker_hijack_root_logger = False

# ── Reliability ──
celery.conf.task_acks_late = True
celery.conf.worker_prefetch_multiplier = 1

# ── Task routes ──
celery.conf.task_default_queue = "sync"
celery.conf.task_routes = {
    "macrodesk.workers.macro_sync.run_macro_sync_task": {"queue": "sync"},
}

# ── Beat Schedule ──
celery.conf.beat_schedule = {
    "macro-sync-daily": {
        "task": "macrodesk.workers.macro_sync.run_macro_sync_task",
        "schedule": parse_cron(settings.MACRO_SYNC_CRON),
    },
}

# ── Auto-discover tasks ──
celery.autodiscover_tasks(["macrodesk.workers"], related_name="macro_sync", force=True)
