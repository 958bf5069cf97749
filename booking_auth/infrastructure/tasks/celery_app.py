"""Celery application configuration for background maintenance."""

from celery import Celery
from celery.signals import setup_logging

from booking_auth.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "booking_auth",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "booking_auth.infrastructure.tasks.maintenance_tasks",
    ],
)

celery_app.conf.update(
    task_routes={
        "booking_auth.infrastructure.tasks.maintenance_tasks.*": {"queue": "maintenance"},
    },

    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,

    result_expires=3600,

    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        "cleanup-revoked-tokens": {
            "task": "booking_auth.infrastructure.tasks.maintenance_tasks.prune_revoked_tokens",
            "schedule": settings.token_cleanup_interval_seconds,
        },
        "cleanup-expired-tokens": {
            "task": "booking_auth.infrastructure.tasks.maintenance_tasks.cleanup_expired_tokens",
            "schedule": settings.token_cleanup_interval_seconds,
        },
        "health-check-database": {
            "task": "booking_auth.infrastructure.tasks.maintenance_tasks.health_check_database",
            "schedule": 300.0,
        },
    },
)


@setup_logging.connect
def config_loggers(*args, **kwargs):
    """Configure Celery logging."""
    from logging.config import dictConfig
    from booking_auth.utils.logging import get_logging_config

    dictConfig(get_logging_config())


def get_celery_app() -> Celery:
    """
    Get configured Celery application.

    Returns:
        Celery: Configured Celery application
    """
    return celery_app
