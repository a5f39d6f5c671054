"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "stock_inventory",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["workers.stock_jobs"],
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
        "workers.stock_jobs.*": {"queue": "inventory"},
    },
    # ── Celery Beat Schedule ─────────────────────────────────────────
    # The low-stock alert pass reads the cached total_stock, so the stock
    # check fires first and alert generation a few minutes later.
    beat_schedule={
        "check-stock-levels-hourly": {
            "task": "workers.stock_jobs.check_stock_levels",
            "schedule": crontab(minute=settings.stock_check_cron_minute),
            "options": {"queue": "inventory"},
        },
        "generate-alerts-hourly": {
            "task": "workers.stock_jobs.generate_alerts",
            "schedule": crontab(minute=settings.alert_generation_cron_minute),
            "options": {"queue": "inventory"},
        },
    },
)
