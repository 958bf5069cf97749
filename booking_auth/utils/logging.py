"""Logging configuration utilities."""

from typing import Dict, Any

from booking_auth.settings import Settings, get_settings


def get_logging_config(settings: Settings | None = None) -> Dict[str, Any]:
    """
    Get logging configuration dictionary.

    Args:
        settings: Application settings, defaults to the cached instance

    Returns:
        Logging configuration for dictConfig
    """
    settings = settings or get_settings()
    formatter = "json" if settings.log_format == "json" else "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "class": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": settings.log_level,
                "formatter": formatter,
                "filename": f"{settings.log_dir}/booking_auth.log",
                "maxBytes": 10485760,
                "backupCount": 10,
            },
            "celery_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": settings.log_level,
                "formatter": formatter,
                "filename": f"{settings.log_dir}/celery.log",
                "maxBytes": 10485760,
                "backupCount": 10,
            },
        },
        "loggers": {
            "booking_auth": {
                "level": settings.log_level,
                "handlers": ["console", "file"],
                "propagate": False,
            },
            "celery": {
                "level": settings.log_level,
                "handlers": ["console", "celery_file"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": settings.log_level,
            "handlers": ["console"],
        },
    }


def setup_logging(settings: Settings | None = None) -> None:
    """Setup logging configuration."""
    import logging
    import logging.config
    from pathlib import Path

    settings = settings or get_settings()
    Path(settings.log_dir).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(get_logging_config(settings))

    logger = logging.getLogger("booking_auth")
    logger.info("Logging configured successfully")
