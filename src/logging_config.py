"""Logging configuration for the foodturns core.

Provides a JSON formatted logger named ``foodturns``; modules obtain child
loggers through :func:`get_logger`.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_NAME = "foodturns"
LOG_FILE = Path(os.getenv("FOODTURNS_LOG_FILE", "logs/app.log"))
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

# Attributes present on every LogRecord. Anything else is considered an extra field.
DEFAULT_LOG_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """Formatter returning log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short description
        base: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in DEFAULT_LOG_RECORD_ATTRS
        }
        request_id = extras.pop("request_id", None)
        if request_id is not None:
            base["request_id"] = request_id
        if extras:
            base["extra"] = extras
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def _own_handlers(logger: logging.Logger) -> list[logging.Handler]:
    """Handlers installed by :func:`_configure_root`, ignoring any a host attached."""
    return [h for h in logger.handlers if isinstance(h.formatter, JsonFormatter)]


def _configure_root() -> logging.Logger:
    logger = logging.getLogger(LOG_NAME)
    if _own_handlers(logger):
        return logger

    logger.setLevel(logging.DEBUG)

    formatter = JsonFormatter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG)
    stream_handler.setFormatter(formatter)

    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    logger.addHandler(stream_handler)
    logger.addHandler(file_handler)
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the project logger, or a child of it when ``name`` is given."""
    root = _configure_root()
    if not name:
        return root
    return root.getChild(name)
