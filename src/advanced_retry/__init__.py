"""结构化失败恢复：可插拔错误解析链驱动的重试引擎。

advanced-retry: retry with a chain of pluggable error resolvers.

Runs an operation and, on failure, consults an ordered chain of
resolvers that may delay, rewrite the carried context, move on to the
next resolver, or declare the failure unrecoverable. An overall timeout
and external cancellation tokens can interrupt the whole run.
"""
from __future__ import annotations

from advanced_retry.batch import execute_with_retry_all
from advanced_retry.cancel import (
    CancelReason,
    CancelToken,
    LinkedCancelToken,
    merge_tokens,
    with_timeout,
)
from advanced_retry.config import RetrySettings
from advanced_retry.errors import (
    ConfigurationError,
    OperationAbortedError,
    OperationTimeoutError,
    RetryError,
    UnrecoverableError,
)
from advanced_retry.filters import (
    ErrorFilter,
    all_filters,
    any_filters,
    client_error_filter,
    keyword_filter_all,
    keyword_filter_any,
    none_filters,
    redirect_filter,
    server_error_filter,
    status_code_filter_any,
    status_code_filter_range,
)
from advanced_retry.resolvers import (
    CustomResolution,
    DelayPolicy,
    ErrorResolution,
    ErrorResolver,
    RetryContext,
    custom_resolver,
    delayed_resolver,
)
from advanced_retry.retry import RetryResult, execute_with_retry
from advanced_retry.telemetry import LogLevel, RetryLogger

__version__ = "0.1.0"

__all__ = [
    # Cancellation
    "CancelReason",
    "CancelToken",
    # Errors
    "ConfigurationError",
    # Resolvers
    "CustomResolution",
    "DelayPolicy",
    # Filters
    "ErrorFilter",
    "ErrorResolution",
    "ErrorResolver",
    "LinkedCancelToken",
    # Telemetry
    "LogLevel",
    "OperationAbortedError",
    "OperationTimeoutError",
    "RetryContext",
    "RetryError",
    # Engine
    "RetryResult",
    # Config
    "RetrySettings",
    "RetryLogger",
    "UnrecoverableError",
    "__version__",
    "all_filters",
    "any_filters",
    "client_error_filter",
    "custom_resolver",
    "delayed_resolver",
    "execute_with_retry",
    "execute_with_retry_all",
    "keyword_filter_all",
    "keyword_filter_any",
    "merge_tokens",
    "none_filters",
    "redirect_filter",
    "server_error_filter",
    "status_code_filter_any",
    "status_code_filter_range",
    "with_timeout",
]
