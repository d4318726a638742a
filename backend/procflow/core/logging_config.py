"""Structured logging configuration.

Outside development, records are written as JSON lines so the normalizer's
detection and failure logs can be shipped to a log aggregator as-is. In
development a human-readable format is used instead.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes the workflow services attach through ``extra=``
WORKFLOW_EXTRAS = ("workflow_format", "workflow_code", "warning_count")


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for extra_key in WORKFLOW_EXTRAS:
            if hasattr(record, extra_key):
                log_entry[extra_key] = getattr(record, extra_key)
        return json.dumps(log_entry, default=str)


_DEV_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(environment: str = "development", level: str = "INFO") -> None:
    """Configure the root logger for the given environment.

    Call once at application startup, before any log messages are emitted.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # uvicorn may have installed its own handlers already
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)

    if environment == "development":
        handler.setFormatter(logging.Formatter(_DEV_FORMAT, datefmt="%H:%M:%S"))
    else:
        handler.setFormatter(JSONFormatter())

    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
