"""Structured JSON logger for notion-site.

Every log record is emitted as a single-line JSON object so that a CI job
running the generator can be grepped or shipped to a log pipeline without
extra parsing.

Typical structured output::

    {"ts": "2025-07-01T12:00:00.123456+00:00", "level": "INFO",
     "logger": "notionsite.generator", "message": "page generated",
     "op": "generate_page", "page_id": "abc123", "path": "content/post/hello"}

Usage::

    from notionsite.observability import get_logger

    log = get_logger("notionsite.fetcher")
    log.info("fetched", extra={"extra_fields": {"op": "fetch", "rounds": 3}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys:

    * ``ts`` -- ISO-8601 UTC timestamp
    * ``level`` -- Python log level name
    * ``logger`` -- Logger name
    * ``message`` -- Formatted log message

    Extra structured fields passed via ``extra={"extra_fields": {...}}`` are
    merged into the top-level object.  Exception and stack info are
    serialised when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(
            record, "extra_fields", None
        )
        if extra_fields is not None:
            log_entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


# One handler per logger name so that ``get_logger`` is idempotent even when
# called from several modules and threads.
_configured_loggers: set[str] = set()


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"unknown log level: {level!r}")
        return resolved
    return level


def get_logger(
    name: str = "notionsite",
    *,
    level: int | str = logging.INFO,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Parameters
    ----------
    name:
        Logger name.  Defaults to ``"notionsite"``.
    level:
        Minimum log level as an ``int`` or a case-insensitive string.
        Only applied the first time a given *name* is configured.
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
        logger.setLevel(_resolve_level(level))

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured_loggers.add(name)

    return logger


def set_level(level: int | str) -> None:
    """Apply *level* to every logger configured through :func:`get_logger`.

    Used by the CLI ``--log-level`` option after module-level loggers have
    already been created at import time.
    """
    resolved = _resolve_level(level)
    for name in _configured_loggers:
        logging.getLogger(name).setLevel(resolved)
