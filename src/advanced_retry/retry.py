"""
Retry engine.

Runs an operation and, when it fails, walks an ordered chain of error
resolvers. Each resolver position gets its own attempt counter and a
fresh context; an exhausted resolver hands over to the next one and a
declining resolver passes the same error straight on. Resolvers that
were left behind are never revisited within one run.

An overall timeout and an external cancellation token are merged into
one token that is handed to the operation and the resolvers, and that
the engine checks before every attempt and after every failure.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from advanced_retry.cancel import merge_tokens, with_timeout
from advanced_retry.errors import OperationTimeoutError, RetryError, UnrecoverableError
from advanced_retry.resolvers import ResolutionKind, RetryContext
from advanced_retry.telemetry import LogContext, get_logger, log_context
from advanced_retry.utils import maybe_await

T = TypeVar("T")

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Coroutine, Sequence

    from advanced_retry.cancel import CancelToken
    from advanced_retry.resolvers import ErrorResolver

    Operation = Callable[[RetryContext[Any], CancelToken], T | Awaitable[T]]

logger = get_logger(__name__)


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry run.

    Attributes:
        success: Whether the operation eventually succeeded
        result: The operation's return value (if success)
        error: The final error (if failed)
        total_attempts: Number of times the operation was invoked
        total_attempts_to_succeed: Equal to total_attempts on success, else None
        total_duration_ms: Wall-clock duration of the run in milliseconds
        unrecoverable: A resolver declared the error unrecoverable
    """

    success: bool
    result: T | None = None
    error: BaseException | None = None
    total_attempts: int = 0
    total_attempts_to_succeed: int | None = None
    total_duration_ms: float = 0.0
    unrecoverable: bool = False

    def raise_for_failure(self) -> None:
        """Raise the failure of this run, if any.

        Raises:
            UnrecoverableError: If a resolver declared the error unrecoverable
            Exception: The final error otherwise
        """
        if self.success:
            return
        if self.error is None:
            raise RetryError("Retry run failed without an error")
        if self.unrecoverable:
            raise UnrecoverableError(self.error, attempts=self.total_attempts)
        raise self.error

    def unwrap(self) -> T:
        """Return the result, raising the failure instead if there was one."""
        self.raise_for_failure()
        return self.result  # type: ignore[return-value]


class _RetryRun(Generic[T]):
    """State of one execution: attempt count and resolver position."""

    def __init__(
        self,
        operation: Operation[T],
        resolvers: Sequence[ErrorResolver[Any]],
        token: CancelToken,
    ) -> None:
        self._operation = operation
        self._resolvers = list(resolvers)
        self._token = token
        self.total_attempts = 0
        self.unrecoverable = False

    def _resolver_at(self, index: int) -> ErrorResolver[Any] | None:
        return self._resolvers[index] if index < len(self._resolvers) else None

    async def _attempt(self, context: RetryContext[Any]) -> T:
        self.total_attempts += 1
        logger.debug("Starting attempt", attempt=self.total_attempts)
        return await maybe_await(self._operation(context, self._token))

    async def run(self) -> T:
        """Run until success or a final failure.

        Returns:
            The operation's result

        Raises:
            OperationTimeoutError: The overall timeout fired
            OperationAbortedError: The external token fired
            Exception: The operation's last error, or a resolver's own error
        """
        index = 0
        while True:
            resolver = self._resolver_at(index)
            context: RetryContext[Any] = RetryContext()
            attempt = 0

            while True:
                self._token.raise_if_cancelled()
                try:
                    return await self._attempt(context)
                except Exception as exc:
                    error = exc
                self._token.raise_if_cancelled()

                resolution = None
                while resolver is not None:
                    resolution = await maybe_await(resolver(error, attempt, context, self._token))
                    if resolution.kind != ResolutionKind.DECLINE:
                        break
                    logger.debug("Resolver declined", resolver_index=index, error=repr(error))
                    index += 1
                    resolver = self._resolver_at(index)
                    context = RetryContext()
                    attempt = 0

                if resolver is None or resolution is None:
                    raise error

                if resolution.kind == ResolutionKind.FAIL:
                    logger.debug("Resolver declared error unrecoverable", resolver_index=index)
                    self.unrecoverable = True
                    raise error

                context = resolution.context
                attempt += 1
                if not resolution.exhausted:
                    logger.debug(
                        "Resolver granted retry",
                        resolver_index=index,
                        remaining=resolution.remaining_attempts,
                    )
                    continue

                logger.debug("Resolver exhausted", resolver_index=index, attempts=attempt)
                index += 1
                if index >= len(self._resolvers):
                    raise error
                break


async def _race_timeout(coro: Coroutine[Any, Any, T], timeout_token: CancelToken) -> T:
    """Await ``coro`` unless ``timeout_token`` fires first.

    When the timeout wins the in-flight work is cancelled and awaited
    before OperationTimeoutError is raised.
    """
    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(timeout_token.wait())
    timed_out = False
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            timed_out = True
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.debug("Abandoned attempt failed after timeout", error=repr(exc))
    if timed_out:
        raise OperationTimeoutError(timeout_ms=timeout_token.state.metadata.get("timeout_ms"))
    return task.result()


def _operation_name(operation: Any) -> str:
    return getattr(operation, "__qualname__", None) or type(operation).__name__


async def execute_with_retry(
    operation: Operation[T],
    error_resolvers: Sequence[ErrorResolver[Any]] | None = None,
    *,
    throw_on_unrecovered_error: bool = False,
    overall_timeout_ms: float | None = None,
    cancel_token: CancelToken | None = None,
) -> RetryResult[T]:
    """Execute an operation, recovering from failures with a resolver chain.

    Args:
        operation: ``operation(context, token)``, sync or async
        error_resolvers: Resolvers consulted in order on failure
        throw_on_unrecovered_error: Raise the final error instead of
            returning a failed result
        overall_timeout_ms: Time budget for the whole run, retries and
            delays included; None or 0 means no timeout
        cancel_token: External cancellation source

    Returns:
        RetryResult describing the run

    Raises:
        ValueError: If overall_timeout_ms is negative
        Exception: The final error, only if throw_on_unrecovered_error is set

    Example:
        >>> result = await execute_with_retry(
        ...     fetch_profile,
        ...     [delayed_resolver(DelayPolicy(max_retries=3, initial_delay_ms=100))],
        ...     overall_timeout_ms=5000,
        ... )
        >>> if result.success:
        ...     print(result.result)
    """
    if overall_timeout_ms is not None and overall_timeout_ms < 0:
        raise ValueError(f"overall_timeout_ms must be >= 0, got {overall_timeout_ms}")

    start_time = time.monotonic()
    timeout_token = (
        with_timeout(overall_timeout_ms / 1000.0, timeout_ms=overall_timeout_ms)
        if overall_timeout_ms
        else None
    )
    token = merge_tokens(timeout_token, cancel_token)
    run: _RetryRun[T] = _RetryRun(operation, error_resolvers or [], token)

    ctx = LogContext(run_id=uuid.uuid4().hex[:12], operation=_operation_name(operation))
    with log_context(ctx):
        try:
            if timeout_token is None:
                value = await run.run()
            else:
                value = await _race_timeout(run.run(), timeout_token)
        except Exception as exc:
            logger.warning(
                "Retry run failed",
                attempts=run.total_attempts,
                error=repr(exc),
                unrecoverable=run.unrecoverable,
            )
            if throw_on_unrecovered_error:
                raise
            return RetryResult(
                success=False,
                error=exc,
                total_attempts=run.total_attempts,
                total_duration_ms=(time.monotonic() - start_time) * 1000,
                unrecoverable=run.unrecoverable,
            )
        finally:
            token.dispose()
            if timeout_token is not None:
                timeout_token.dispose()

        if run.total_attempts > 1:
            logger.info("Operation succeeded after retries", attempts=run.total_attempts)
        return RetryResult(
            success=True,
            result=value,
            total_attempts=run.total_attempts,
            total_attempts_to_succeed=run.total_attempts,
            total_duration_ms=(time.monotonic() - start_time) * 1000,
        )
