"""Logging setup for the service (stdlib logging, configured once at startup)."""

import logging
import logging.config

from snf_admin.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging with a single stream handler."""
    log_level = (level or settings.log_level).upper()
    if log_level not in logging.getLevelNamesMapping():
        log_level = "INFO"
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"level": log_level, "handlers": ["console"]},
            "loggers": {
                # httpx logs every request at INFO
                "httpx": {"level": "WARNING"},
            },
        }
    )
