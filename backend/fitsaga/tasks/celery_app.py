# backend/fitsaga/tasks/celery_app.py
"""
Celery application configuration for FitSaga.

This module sets up the Celery app with Redis as the broker and backend,
configures task serialization, timezone, and the beat schedule that drives
the monthly credit refill.
"""

import logging
import os
from typing import Any, Dict

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from ..core.config import settings


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    """Refill runs daily; the service only touches balances whose date has passed."""
    return {
        "monthly-credit-refill": {
            "task": "credits.refill_due_balances",
            "schedule": crontab(hour=0, minute=15),
            "options": {"expires": 3600},
        },
    }


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    # Priority: CELERY_BROKER_URL -> REDIS_URL -> settings.redis_url
    broker_url = os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL") or settings.redis_url
    result_backend = os.getenv("CELERY_RESULT_BACKEND") or broker_url

    celery_app = Celery("fitsaga", broker=broker_url, backend=result_backend)

    celery_app.conf.update(
        {
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "task_soft_time_limit": 300,
            "task_time_limit": 600,
            "worker_hijack_root_logger": False,
            "beat_schedule": get_beat_schedule(),
            "imports": ("fitsaga.tasks.credit_tasks",),
        }
    )
    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Configure logging to integrate with the application's logging setup."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


celery_app = create_celery_app()
