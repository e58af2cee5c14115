"""Logging setup shared by the API process and the scheduler worker."""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable

from taskboard.core.context import get_request_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"
QUIET_LOGGERS = ("sqlalchemy.engine", "apscheduler.executors")

_configured = False


class RequestIdFilter(logging.Filter):
    """Stamp every record with the active request id ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def build_logging_config(log_level: str, quiet_loggers: Iterable[str] = QUIET_LOGGERS) -> Dict[str, Any]:
    level = log_level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"taskboard": {"format": LOG_FORMAT}},
        "filters": {"request_id": {"()": RequestIdFilter}},
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "taskboard",
                "filters": ["request_id"],
                "level": level,
            }
        },
        # Capped so SQL echo and job chatter stay out of DEBUG output.
        "loggers": {name: {"level": "WARNING"} for name in quiet_loggers},
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(*, log_level: str = "INFO", quiet_loggers: Iterable[str] = QUIET_LOGGERS) -> None:
    """Install the taskboard logging config; later calls are ignored."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(log_level, quiet_loggers))
    _configured = True
    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
