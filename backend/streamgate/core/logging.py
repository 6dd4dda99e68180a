"""Structured logging with correlation IDs.

Every upload pipeline runs under its own correlation ID so the log lines of
one asset can be grouped, and HTTP requests carry theirs from the
X-Correlation-ID header.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are not caller-supplied context
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "correlation_id"}


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one for this context if unset."""
    cid = correlation_id_var.get()
    if cid is None:
        cid = str(uuid.uuid4())
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Fields: timestamp, level, logger, message, correlation_id, source, and
    when present the exception and any `extra` context passed by the caller.
    """

    def __init__(self, include_stack_trace: bool = True):
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        if record.exc_info and self.include_stack_trace:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stack_trace": traceback.format_exception(exc_type, exc_value, exc_tb) if exc_tb else None,
            }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if context:
            entry["extra"] = context

        # Unserializable context values fall back to str()
        return json.dumps(entry, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the current correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_stack_trace: bool = True,
) -> None:
    """Route all logging to stdout.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit StructuredFormatter JSON instead of plain text
        include_stack_trace: Include stack traces in JSON error records
    """
    numeric_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter(include_stack_trace=include_stack_trace))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
        ))

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # Per-statement SQL and access lines are too chatty at INFO
    for name in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.WARNING)


def log_info(logger: logging.Logger, message: str, **context: Any) -> None:
    """Log at INFO with the correlation ID and context fields."""
    context["correlation_id"] = get_correlation_id()
    logger.info(message, extra=context)


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    **context: Any,
) -> None:
    """Log at ERROR with the correlation ID, context fields and optional exception.

    Args:
        logger: Logger instance
        message: Error message
        exception: Exception whose traceback is attached
        **context: Additional context fields
    """
    context["correlation_id"] = get_correlation_id()
    logger.error(message, exc_info=exception, extra=context)
