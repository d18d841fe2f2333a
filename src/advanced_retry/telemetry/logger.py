"""
Structured logging for advanced-retry.

Every line emitted while a retry run is active carries the run id and
the operation name bound by the engine, plus any keyword fields passed
at the call site.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterator

_run_context: ContextVar[LogContext | None] = ContextVar("retry_log_context", default=None)


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    def to_logging_level(self) -> int:
        """Convert to standard logging level."""
        return getattr(logging, self.value)


@dataclass(frozen=True)
class LogContext:
    """Fields attached to every line logged during a retry run.

    Attributes:
        run_id: Identifier of the retry run
        operation: Name of the operation being retried
        extra: Additional fields
    """

    run_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Non-empty fields as a flat dictionary."""
        result = {k: v for k, v in (("run_id", self.run_id), ("operation", self.operation)) if v}
        result.update(self.extra)
        return result


def get_log_context() -> LogContext:
    """Context of the retry run active in this task, or an empty one."""
    return _run_context.get() or LogContext()


@contextmanager
def log_context(context: LogContext) -> Iterator[LogContext]:
    """Bind a logging context for the duration of a ``with`` block."""
    token = _run_context.set(context)
    try:
        yield context
    finally:
        _run_context.reset(token)


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra_fields", {})


class JsonFormatter(logging.Formatter):
    """One JSON object per line; run context nested under ``context``."""

    def __init__(self, include_timestamp: bool = True) -> None:
        super().__init__()
        self._include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._include_timestamp:
            stamp = time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            data["timestamp"] = f"{stamp}.{int(record.msecs):03d}Z"
        if run := get_log_context().to_dict():
            data["context"] = run
        data.update(_record_fields(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """``time | LEVEL | logger | message | key=value ...``"""

    def __init__(self, include_context: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = get_log_context().to_dict() if self._include_context else {}
        fields.update(_record_fields(record))
        if not fields:
            return line
        return f"{line} | " + " ".join(f"{k}={v}" for k, v in fields.items())


class RetryLogger:
    """Logger for advanced-retry taking structured keyword fields.

    Loggers obtained here do not propagate; ``configure`` swaps the one
    shared handler on all of them.

    Example:
        >>> logger = RetryLogger.get_logger("advanced_retry.retry")
        >>> logger.debug("Resolver declined", resolver_index=0)
    """

    _loggers: ClassVar[dict[str, logging.Logger]] = {}
    _level: ClassVar[LogLevel] = LogLevel.WARNING
    _handler: ClassVar[logging.Handler | None] = None

    @classmethod
    def _default_handler(cls) -> logging.Handler:
        if cls._handler is None:
            cls._handler = logging.StreamHandler(sys.stderr)
            cls._handler.setFormatter(TextFormatter())
        return cls._handler

    @classmethod
    def _attach(cls, logger: logging.Logger) -> None:
        logger.handlers.clear()
        logger.addHandler(cls._default_handler())
        logger.setLevel(cls._level.to_logging_level())
        logger.propagate = False

    @classmethod
    def configure(
        cls,
        level: LogLevel = LogLevel.INFO,
        format: str = "json",
        stream: Any = None,
    ) -> None:
        """Set level, output format ('json' or 'text') and stream for all loggers."""
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(JsonFormatter() if format == "json" else TextFormatter())
        cls._level = level
        cls._handler = handler
        for logger in cls._loggers.values():
            cls._attach(logger)

    @classmethod
    def get_logger(cls, name: str) -> RetryLogger:
        """Get or create the logger called ``name``."""
        if name not in cls._loggers:
            logger = logging.getLogger(name)
            cls._attach(logger)
            cls._loggers[name] = logger
        return cls(cls._loggers[name])

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Name of the underlying logger."""
        return self._logger.name

    def _log(self, level: int, msg: str, exc_info: bool = False, **fields: Any) -> None:
        self._logger.log(level, msg, exc_info=exc_info, extra={"extra_fields": fields})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, **fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, exc_info=True, **fields)


def get_logger(name: str) -> RetryLogger:
    """Get a logger instance."""
    return RetryLogger.get_logger(name)
