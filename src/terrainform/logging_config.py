"""
Structured logging configuration for terra-inform.

Logs are JSON objects written to stderr. terra-inform shares the terminal
with terraform, whose plan output goes to stdout, so diagnostic output must
never land on stdout.

Log Format:
    {
        "timestamp": "2025-11-14T10:30:00.123000+00:00",
        "level": "INFO",
        "logger": "terrainform.dispatcher",
        "correlation_id": "abc123...",
        "message": "Dispatch complete",
        "succeeded": 2,
        "failed": 0,
        ...additional context...
    }

Usage:
    from terrainform.logging_config import setup_logging, get_logger, log_with_context

    setup_logging(log_level="INFO")
    logger = get_logger(__name__)

    log_with_context(logger, "info", "Running check", check_name="summarizer")
"""

import contextvars
import json
import logging
import sys
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import UTC, datetime
from types import TracebackType
from typing import TypeVar

from typing_extensions import override

T = TypeVar("T")

# Correlation ID for one CLI invocation. Worker threads do not inherit
# context variables, so callers hand them a copied context (see
# run_with_context).
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON object.

    Standard fields are timestamp, level, logger, correlation_id and message.
    Anything passed through ``extra=`` becomes a top-level field. Values that
    are not JSON serializable (exceptions, paths) are rendered with ``str``.
    """

    @override
    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation of log record
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": _correlation_id.get(),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(log_level: str = "WARNING") -> None:
    """
    Configure structured logging for terra-inform.

    Replaces any handlers on the root logger with a single stderr handler
    using StructuredFormatter. Call once at startup.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    """Return a new random correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context."""
    _ = _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Return the correlation ID for the current context, if any."""
    return _correlation_id.get()


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """
    Log message with additional structured context.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Human-readable log message
        **context: Additional context fields as keyword arguments

    Example:
        >>> log_with_context(
        ...     logger,
        ...     "warning",
        ...     "Check failed",
        ...     check_name="downtime-analyzer",
        ...     error="rate limited",
        ... )
    """
    log_func: Callable[..., None] = getattr(logger, level.lower())
    log_func(message, extra=dict(context))


def run_with_context(func: Callable[..., T]) -> Callable[..., T]:
    """
    Bind ``func`` to a copy of the caller's context.

    Used when handing work to a thread pool so that log records emitted by
    worker threads keep the caller's correlation ID.

    Args:
        func: Callable to run later, possibly on another thread

    Returns:
        Callable with the same signature that runs inside the copied context
    """
    ctx = contextvars.copy_context()

    def _runner(*args: object, **kwargs: object) -> T:
        return ctx.copy().run(func, *args, **kwargs)

    return _runner


class LogContext:
    """
    Context manager that sets a correlation ID for a block of code.

    Example:
        >>> with LogContext() as correlation_id:
        ...     logger.info("This has correlation_id")
    """

    def __init__(self, correlation_id: str | None = None) -> None:
        """
        Initialize log context.

        Args:
            correlation_id: Correlation ID to use (generates new if None)
        """
        self.correlation_id: str = correlation_id or generate_correlation_id()
        self._token: contextvars.Token[str | None] | None = None

    def __enter__(self) -> str:
        """Set the correlation ID and return it."""
        self._token = _correlation_id.set(self.correlation_id)
        return self.correlation_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Restore the previous correlation ID."""
        if self._token is not None:
            _correlation_id.reset(self._token)
            self._token = None
