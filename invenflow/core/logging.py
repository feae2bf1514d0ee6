import sys
import logging
from logging.config import dictConfig

from invenflow.core.config import LOG_LEVEL

ACCESS_FIELDS = ("client_addr", "method", "path", "status_code", "process_time_ms")


class AccessRecordFilter(logging.Filter):
    """Fill missing access fields so a stray ``access`` log line cannot break formatting."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in ACCESS_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return True


def setup_logging():
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            # -----------------
            # FORMATTERS
            # -----------------
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | %(client_addr)s | %(method)s | "
                        "%(path)s | %(status_code)s | %(process_time_ms)sms"
                    ),
                },
            },

            "filters": {
                "access_defaults": {"()": AccessRecordFilter},
            },

            # -----------------
            # HANDLERS
            # -----------------
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
                "access_console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "access",
                    "filters": ["access_defaults"],
                },
            },

            # -----------------
            # LOGGERS
            # -----------------
            "loggers": {
                # request_logging_middleware; token paths arrive masked
                "access": {
                    "handlers": ["access_console"],
                    "level": "INFO",
                    "propagate": False,
                },
                # uvicorn's own access line would print the raw public token
                "uvicorn.access": {
                    "level": "WARNING",
                },
                "apscheduler": {
                    "level": "WARNING",
                },
                "sqlalchemy.engine": {
                    "level": "WARNING",
                },
                # DEBUG lines carry bound parameters, public tokens included
                "aiosqlite": {
                    "level": "WARNING",
                },
            },

            # -----------------
            # ROOT LOGGER
            # -----------------
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console"],
            },
        }
    )
