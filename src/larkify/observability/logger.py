"""Structured JSON logger for larkify.

Every log record is emitted as a single-line JSON object so it can be
consumed by log aggregation pipelines without additional parsing.

Typical structured output::

    {"ts": "2026-01-05T08:00:00.123456+00:00", "level": "WARNING",
     "logger": "larkify.retries", "message": "create_children retry 1/3 after 262ms: frequency limit",
     "op": "create_children", "attempt": 1, "delay_ms": 262}

Usage::

    from larkify.observability import get_logger

    log = get_logger("larkify.insert")
    log.info("batch inserted", extra={"extra_fields": {"op": "insert", "count": 50}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys are ``ts``, ``level``, ``logger`` and ``message``.
    Fields passed via ``extra={"extra_fields": {...}}`` are merged into the
    top-level object; ``exception`` is added when ``exc_info`` is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if extra_fields is not None:
            log_entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


# One handler per logger name; repeated calls must not stack handlers.
_configured_loggers: set[str] = set()


def get_logger(
    name: str = "larkify",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Parameters
    ----------
    name:
        Logger name.  Defaults to ``"larkify"``.
    level:
        Minimum log level, as an ``int`` or a case-insensitive string.
    stream:
        Output stream for the handler.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        A logger with a :class:`StructuredFormatter` handler attached.
        Repeated calls with the same *name* return the same logger and do
        not add duplicate handlers.
    """
    logger = logging.getLogger(name)

    if name not in _configured_loggers:
        resolved_level = (
            logging.getLevelName(level.upper())
            if isinstance(level, str)
            else level
        )
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured_loggers.add(name)

    return logger
