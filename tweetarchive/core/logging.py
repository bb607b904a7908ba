"""
Tweet Archive - Structured Logging

Production writes one JSON object per line; dev writes short colored lines.
Either way DEBUG/INFO go to stdout and WARNING+ go to stderr.

Fields pushed with LogContext ride along on every record emitted inside the
block, across threads handed the same context (FastAPI runs sync endpoints
that way):

    request_id  - set by RequestLoggingMiddleware for each HTTP request
    upload_id   - set by IngestService for each archive
    service     - set once by configure_structured_logging

Usage:
    from tweetarchive.core.logging import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(upload_id=upload_id):
        logger.info("Archive ingested")
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Mapping

_log_context: ContextVar[Mapping[str, Any]] = ContextVar("tweetarchive_log_context", default={})

# Context keys the console formatter prints, in this order
CONSOLE_CONTEXT_KEYS = ("request_id", "upload_id", "entry")


def get_current_context() -> Dict[str, Any]:
    """Snapshot of the fields LogContext has pushed so far."""
    return dict(_log_context.get())


def set_context(**fields: Any) -> None:
    """Add fields for the rest of the current context (no automatic undo)."""
    _log_context.set({**_log_context.get(), **fields})


def clear_context() -> None:
    _log_context.set({})


@contextmanager
def LogContext(**fields: Any) -> Generator[None, None, None]:
    """Push fields onto every record logged inside the block."""
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


# =============================================================================
# Formatters
# =============================================================================


def _record_fields(record: logging.LogRecord, keys: tuple[str, ...]) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in keys if getattr(record, key, None) is not None}


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON object per record:

        {"timestamp": "...", "level": "INFO", "logger": "tweetarchive.db",
         "message": "Inserted 12 tweets", "request_id": "1a2b3c4d",
         "upload_id": "...", "count": 12}
    """

    # Attributes callers may attach with ``extra=``
    EXTRA_KEYS = (
        "request_id",
        "upload_id",
        "entry",
        "message_id",
        "error_code",
        "count",
        "duration_ms",
        "status_code",
        "path",
        "method",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **get_current_context(),
            **_record_fields(record, self.EXTRA_KEYS),
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(payload, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """``12:00:00.123 INFO     tweetarchive.db [request_id=..] message``"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        tags = " ".join(f"{key}={context[key]}" for key in CONSOLE_CONTEXT_KEYS if key in context)

        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelno, "")
        line = f"{stamp} {color}{record.levelname:8}{self.RESET} {record.name}"
        if tags:
            line = f"{line} [{tags}]"
        line = f"{line} {record.getMessage()}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


# =============================================================================
# Handlers
# =============================================================================


class _MaxLevelFilter(logging.Filter):
    """Drop records above ``max_level``."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


def _create_split_handlers(formatter: logging.Formatter, level: int) -> list[logging.Handler]:
    """stdout takes DEBUG/INFO, stderr takes WARNING and above."""
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.addFilter(_MaxLevelFilter(logging.INFO))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(max(level, logging.WARNING))

    handlers: list[logging.Handler] = [stdout_handler, stderr_handler]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_structured_logging(
    level: str = "INFO",
    json_output: bool = True,
    service_name: str = "tweetarchive",
) -> None:
    """
    Replace the root handlers with the split stdout/stderr pair.

    Args:
        level: Root log level name
        json_output: JSON lines (prod) instead of colored console output
        service_name: Added to the context of every record
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = StructuredJsonFormatter() if json_output else ColoredConsoleFormatter()
    for handler in _create_split_handlers(formatter, numeric_level):
        root.addHandler(handler)

    # psycopg_pool logs every connection checkout at INFO
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)

    set_context(service=service_name)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
