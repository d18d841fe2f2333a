"""错误基类：为重试引擎提供分层错误体系和结构化错误上下文。

Base error classes for advanced-retry.

Provides a layered error hierarchy:
- RetryError: Base class for all library errors
- OperationTimeoutError: The overall timeout elapsed
- OperationAbortedError: An external cancellation token fired
- UnrecoverableError: A resolver declared the failure unrecoverable
- ConfigurationError: Invalid resolver-chain configuration

Errors raised by the retried operation itself are never wrapped; they
reach the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from advanced_retry.cancel import CancelReason


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    source: str | None = None
    """Error source (e.g., 'engine', 'config')"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class RetryError(Exception):
    """Base class for all advanced-retry errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> RetryError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class OperationTimeoutError(RetryError, TimeoutError):
    """The overall timeout of a retry run elapsed.

    Raised (or attached to the result) whether the timeout fired while an
    attempt was in flight, while a resolver was sleeping, or between
    attempts.
    """

    def __init__(
        self,
        message: str = "Operation timed out",
        *,
        timeout_ms: float | None = None,
    ) -> None:
        ctx = ErrorContext(source="engine")
        if timeout_ms is not None:
            ctx.details["timeout_ms"] = timeout_ms
        super().__init__(message, ctx)
        self.timeout_ms = timeout_ms


class OperationAbortedError(RetryError):
    """An external cancellation token fired during a retry run."""

    def __init__(
        self,
        message: str = "Operation aborted",
        *,
        reason: CancelReason | None = None,
    ) -> None:
        ctx = ErrorContext(source="engine")
        if reason is not None:
            ctx.details["reason"] = reason.value
        super().__init__(message, ctx)
        self.reason = reason


class UnrecoverableError(RetryError):
    """A resolver declared that no further recovery is possible.

    Attributes:
        cause: The operation error that triggered the decision
        attempts: Number of operation invocations made
    """

    def __init__(
        self,
        cause: BaseException,
        *,
        attempts: int = 0,
    ) -> None:
        ctx = ErrorContext(source="resolver", details={"attempts": attempts})
        super().__init__(f"Unrecoverable error: {cause}", ctx)
        self.cause = cause
        self.attempts = attempts
        self.__cause__ = cause


class ConfigurationError(RetryError):
    """Invalid retry configuration.

    Raised when:
    - The configuration file does not exist
    - The YAML document cannot be parsed
    - The document fails schema validation
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        config_path: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="config")
        if config_path:
            ctx.details["config_path"] = config_path
        super().__init__(message, ctx)
        self.config_path = config_path
