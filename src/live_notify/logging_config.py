"""Structured JSON logging configuration.

Configures Python stdlib logging to emit JSON with GCP-compatible field names,
so `severity`, `message`, and other fields are picked up from stdout.

Usage:
    from live_notify.logging_config import configure_logging
    configure_logging()
"""

import logging
import logging.config

LOGGING_CONFIG: dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(funcName)s %(message)s",
            "rename_fields": {
                "levelname": "severity",
                "asctime": "timestamp",
                "name": "logger",
            },
            "static_fields": {
                "service": "live-notify",
            },
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"],
    },
}


def configure_logging(level: str = "INFO") -> None:
    """Apply structured JSON logging configuration.

    Call once at application startup (in the FastAPI lifespan). All later
    ``logging.getLogger()`` calls emit JSON to stdout with a ``severity``
    field mapped from Python's ``levelname``.
    """
    config = {**LOGGING_CONFIG, "root": {**LOGGING_CONFIG["root"], "level": level.upper()}}
    logging.config.dictConfig(config)
