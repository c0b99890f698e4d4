"""JSON event logging for serverctl.

Operator-facing command output ("Started as 123") is printed to stdout by the
CLI. This module only carries diagnostic events, one JSON object per line on
stderr, so daemon wrappers can collect them without parsing prose.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
from typing import Any


LOG_LEVEL_ENV = "SERVERCTL_LOG_LEVEL"
DEFAULT_LEVEL = logging.WARNING

_RESERVED = {
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
    "message",
    "taskName",
}


class _JsonFormatter(logging.Formatter):
    """Emit one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith("_"):
                continue
            payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Signal numbers arrive as enum members.
        return json.dumps(payload, sort_keys=True, default=str)


def resolve_level(level: str | None) -> int:
    """Map a level name to its number.

    ``None`` reads ``SERVERCTL_LOG_LEVEL``. Unknown names fall back to WARNING
    so a typo in the environment never stops a stop/kill command.
    """

    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "")
    number = logging.getLevelName(level.strip().upper())
    return number if isinstance(number, int) else DEFAULT_LEVEL


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install the stderr JSON handler once, then (re)apply the level."""

    logger = logging.getLogger("serverctl")
    logger.setLevel(resolve_level(level))
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = "serverctl") -> logging.Logger:
    """Return a logger under the configured serverctl namespace."""

    root = logging.getLogger("serverctl")
    if not root.handlers:
        configure_logging()
    return logging.getLogger(name)


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log ``event`` with ``fields`` as top-level JSON keys."""

    logger.log(level, event, extra={"event": event, **fields})
