"""
Logging setup, called once from ``main.py``.

Records go to stdout (readable, coloured) and to two rotating JSON-lines
files under ``logs/``: everything at ``LOG_LEVEL`` and errors only.  Every
record carries the id of the request that produced it, taken from
``request_id_var`` (set by ``RequestIDMiddleware``).

Structured fields passed with ``extra=`` (HTTP access fields, ``bill_no``,
``medicine_id``, stock movements) become top-level JSON keys.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from clinicpos.core.config import settings

LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_LEVEL_COLOURS = {
    logging.DEBUG: "36",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "35",
}


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    EXTRA_FIELDS = (
        "method",
        "path",
        "status_code",
        "elapsed_ms",
        "client_ip",
        "bill_no",
        "medicine_id",
        "stock_before",
        "stock_after",
    )

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if getattr(record, "request_id", None):
            entry["request_id"] = record.request_id
        entry.update(
            (field, getattr(record, field))
            for field in self.EXTRA_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        colour = _LEVEL_COLOURS.get(record.levelno, "0")
        request_id = getattr(record, "request_id", None)
        line = "%s \033[%sm%-7s\033[0m %s%s: %s" % (
            self.formatTime(record, self.datefmt),
            colour,
            record.levelname,
            record.name.replace("clinicpos.", ""),
            f" [{request_id[:8]}]" if request_id else "",
            record.getMessage(),
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    return handler


def _rotating(filename: str) -> RotatingFileHandler:
    return RotatingFileHandler(
        os.path.join(LOG_DIR, filename),
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )


def setup_logging() -> None:
    """Install the handlers on the root logger; a no-op when already done."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = logging.DEBUG if settings.DEBUG else logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    os.makedirs(LOG_DIR, exist_ok=True)
    root.addHandler(_handler(logging.StreamHandler(sys.stdout), level, ConsoleFormatter()))
    root.addHandler(_handler(_rotating("clinicpos.log"), level, JSONFormatter()))
    root.addHandler(_handler(_rotating("clinicpos-error.log"), logging.ERROR, JSONFormatter()))

    # Access lines come from RequestTimingMiddleware instead.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )

    root.info("Logging to %s at %s", LOG_DIR, logging.getLevelName(level))
