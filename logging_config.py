from __future__ import annotations

import logging
import time
from logging.config import dictConfig

from settings import get_settings

# httpx logs every request at INFO, once per poll
_QUIET_LOGGERS = ("httpx", "httpcore")
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


class ContextualFormatter(logging.Formatter):
    """UTC timestamps, plus ``key=value`` for the poller's ``extra`` fields."""

    converter = time.gmtime
    context_keys = (
        "sensor_id",
        "parent_id",
        "policy",
        "reading_count",
        "suppressed_count",
        "poll_ms",
        "concentration",
        "status_code",
        "reason",
    )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self.context_keys
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def configure_logging(level: str | int | None = None) -> None:
    """Route the service, uvicorn and httpx loggers through one stderr handler."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    loggers = {
        name: {"handlers": ["default"], "level": log_level, "propagate": False}
        for name in _SERVER_LOGGERS
    }
    loggers.update({name: {"level": "WARNING"} for name in _QUIET_LOGGERS})

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "class": "logging_config.ContextualFormatter",
                    "format": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": loggers,
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
