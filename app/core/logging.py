"""Logging setup shared by the API process and the scheduler worker."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from app.core.context import get_request_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"

# Third-party loggers that are noisy at INFO.
QUIET_LOGGERS = ("apscheduler", "httpx", "openai", "sqlalchemy.engine")


class RequestIdFilter(logging.Filter):
    """Stamp every record with the active request id, or ``-`` outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO", force: bool = False) -> None:
    """Install the console handler once per process; ``force`` reapplies it."""
    if getattr(configure_logging, "_configured", False) and not force:
        return

    level = log_level.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "filters": {"request_id": {"()": "app.core.logging.RequestIdFilter"}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                    "filters": ["request_id"],
                }
            },
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {"handlers": ["console"], "level": level},
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", level)
    setattr(configure_logging, "_configured", True)
