"""
Resolver chain protocol.

A resolver receives the error of a failed attempt and decides what
happens next:

- DECLINE: the resolver does not handle this error; the next resolver
  in the chain is consulted with the same error
- RETRY: run the operation again; ``remaining_attempts <= 0`` means the
  resolver's budget is spent and the chain moves on
- FAIL: the error is unrecoverable; the run ends immediately
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from advanced_retry.filters import to_error_filter

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from advanced_retry.cancel import CancelToken
    from advanced_retry.filters import ErrorFilter, FilterLike

X = TypeVar("X")


@dataclass(frozen=True)
class RetryContext(Generic[X]):
    """Caller-defined data carried between attempts.

    Contexts are immutable; a resolver that wants to change the data
    returns a new context in its resolution.

    Attributes:
        data: Opaque caller data, None on the first attempt of a resolver
    """

    data: X | None = None


class ResolutionKind(str, Enum):
    """Outcome of a resolver invocation."""

    DECLINE = "decline"
    RETRY = "retry"
    FAIL = "fail"


@dataclass(frozen=True)
class ErrorResolution(Generic[X]):
    """Result returned by a resolver for one failed attempt.

    Attributes:
        remaining_attempts: Attempts left in this resolver's budget;
            negative means the resolver declined the error
        unrecoverable: Stop the whole run, no further resolver is tried
        context: Context handed to the next attempt
    """

    remaining_attempts: int
    unrecoverable: bool = False
    context: RetryContext[X] = field(default_factory=RetryContext)

    @property
    def kind(self) -> ResolutionKind:
        """Classify this resolution."""
        if self.unrecoverable:
            return ResolutionKind.FAIL
        if self.remaining_attempts < 0:
            return ResolutionKind.DECLINE
        return ResolutionKind.RETRY

    @property
    def exhausted(self) -> bool:
        """True for a RETRY whose budget is spent."""
        return self.kind == ResolutionKind.RETRY and self.remaining_attempts <= 0

    @classmethod
    def decline(cls) -> ErrorResolution[Any]:
        """The resolver does not handle this error."""
        return cls(remaining_attempts=-1)

    @classmethod
    def retry(
        cls, remaining_attempts: int, context: RetryContext[X] | None = None
    ) -> ErrorResolution[X]:
        """Retry with the given remaining budget."""
        return cls(
            remaining_attempts=max(remaining_attempts, 0),
            context=context or RetryContext(),
        )

    @classmethod
    def fail(cls, context: RetryContext[X] | None = None) -> ErrorResolution[X]:
        """Declare the error unrecoverable."""
        return cls(remaining_attempts=0, unrecoverable=True, context=context or RetryContext())


class ErrorResolver(Protocol[X]):
    """Callable deciding how to recover from a failed attempt.

    Args:
        error: The error raised by the operation
        attempt: Attempt number relative to this resolver (0-based)
        context: Context from the previous invocation of this resolver
        token: Cancellation token of the run; long-running resolvers
            should honour it

    Returns:
        The resolution, or an awaitable resolving to it
    """

    def __call__(
        self,
        error: Any,
        attempt: int,
        context: RetryContext[X],
        token: CancelToken,
    ) -> ErrorResolution[X] | Awaitable[ErrorResolution[X]]: ...


class BaseResolver(Generic[X]):
    """Base class for resolvers gated by an optional error filter.

    Subclasses implement ``_resolve``; errors rejected by the filter are
    declined without calling it.
    """

    def __init__(self, can_handle_error: FilterLike | None = None) -> None:
        self._filter: ErrorFilter[Any] | None = (
            to_error_filter(can_handle_error) if can_handle_error is not None else None
        )

    @property
    def filter(self) -> ErrorFilter[Any] | None:
        """The gating filter, if any."""
        return self._filter

    def handles(self, error: Any, attempt: int, context: RetryContext[X]) -> bool:
        """Check the gating filter."""
        return self._filter is None or self._filter.can_handle(error, attempt, context)

    async def __call__(
        self,
        error: Any,
        attempt: int,
        context: RetryContext[X],
        token: CancelToken,
    ) -> ErrorResolution[X]:
        if not self.handles(error, attempt, context):
            return ErrorResolution.decline()
        return await self._resolve(error, attempt, context, token)

    async def _resolve(
        self,
        error: Any,
        attempt: int,
        context: RetryContext[X],
        token: CancelToken,
    ) -> ErrorResolution[X]:
        raise NotImplementedError("Subclasses must implement _resolve")
