"""
Celery application configuration.

This module sets up the Celery app with Redis as the broker, configures task
serialization and timezone, and installs the beat schedule. The beat timezone
is the reference zone so crontab hours read as local wall-clock hours.
"""

import logging
import os
from typing import Any

from celery import Celery
from celery.signals import setup_logging

from slotbook.core.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    broker_url = os.getenv("CELERY_BROKER_URL") or settings.redis_url

    celery_app = Celery("slotbook", broker=broker_url)

    celery_app.conf.update(
        {
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": settings.reference_timezone,
            "enable_utc": True,
            "task_ignore_result": True,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "task_soft_time_limit": 240,
            "task_time_limit": 300,
            "worker_hijack_root_logger": False,
            "beat_schedule_filename": "celerybeat-schedule",
        }
    )

    # Force import of task modules so tasks are registered on every runner
    celery_app.conf.imports = ("slotbook.tasks.booking_holds",)

    from slotbook.tasks.beat_schedule import get_beat_schedule

    celery_app.conf.beat_schedule = get_beat_schedule()
    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Configure logging to integrate with the application's logging setup."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


# Create the Celery app instance
celery_app = create_celery_app()
