"""
Telemetry module for advanced-retry.

Provides structured, context-aware logging.
"""

from advanced_retry.telemetry.logger import (
    JsonFormatter,
    LogContext,
    LogLevel,
    RetryLogger,
    TextFormatter,
    get_log_context,
    get_logger,
    log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "RetryLogger",
    "TextFormatter",
    "get_log_context",
    "get_logger",
    "log_context",
]
