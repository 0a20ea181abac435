"""Structured JSON logs for the API and the Celery worker."""
from __future__ import annotations

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from macrodesk.config import settings

_LIBRARY_LEVELS = {
    "uvicorn.access": logging.WARNING,
    "celery": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "googleapiclient.discovery_cache": logging.ERROR,
}


def setup_logging(level: str | None = None) -> None:
    """Send every record to stdout as one JSON object tagged with service and env.

    Safe to call more than once; the root handlers are replaced each time.
    """
    formatter = JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        static_fields={"service": "macrodesk", "env": settings.APP_ENV},
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel((level or settings.APP_LOG_LEVEL).upper())

    for name, lib_level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)
    # SQL echo only while developing locally
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.APP_ENV == "development" else logging.WARNING
    )
