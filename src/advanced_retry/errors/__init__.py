"""错误体系：重试引擎对外暴露的结构化错误类型。

Error hierarchy for advanced-retry.
"""

from advanced_retry.errors.base import (
    ConfigurationError,
    ErrorContext,
    OperationAbortedError,
    OperationTimeoutError,
    RetryError,
    UnrecoverableError,
)

__all__ = [
    "ConfigurationError",
    "ErrorContext",
    "OperationAbortedError",
    "OperationTimeoutError",
    "RetryError",
    "UnrecoverableError",
]
