"""
Delayed resolver: wait, then retry up to a fixed budget.

The delay grows linearly with the attempt number and is scaled by a
multiplier:

    delay = initial_delay_ms * (attempt + 1) * backoff_multiplier

capped at ``max_delay_ms`` when set. A ``custom_delay`` function
replaces the formula entirely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from advanced_retry.cancel import sleep
from advanced_retry.resolvers.base import BaseResolver, ErrorResolution, RetryContext
from advanced_retry.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from advanced_retry.cancel import CancelToken
    from advanced_retry.filters import FilterLike

X = TypeVar("X")

logger = get_logger(__name__)


@dataclass
class DelayPolicy:
    """Delay configuration for the delayed resolver.

    Attributes:
        max_retries: Retries this resolver grants (0 = none)
        initial_delay_ms: Base delay in milliseconds
        max_delay_ms: Upper bound for the delay, if any
        backoff_multiplier: Multiplier applied to the linear delay
        custom_delay: ``(attempt, error, context, policy) -> delay_ms``;
            overrides the built-in formula when set
    """

    max_retries: int
    initial_delay_ms: float = 0
    max_delay_ms: float | None = None
    backoff_multiplier: float = 1.0
    custom_delay: Callable[[int, Any, RetryContext[Any], DelayPolicy], float] | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.max_delay_ms is not None and self.max_delay_ms < 0:
            raise ValueError(f"max_delay_ms must be >= 0, got {self.max_delay_ms}")

    def calculate_delay_ms(
        self, attempt: int, error: Any = None, context: RetryContext[Any] | None = None
    ) -> float:
        """Calculate the delay before the next attempt.

        Args:
            attempt: Attempt number relative to the resolver (0-based)
            error: The error being resolved
            context: The carried context

        Returns:
            Delay in milliseconds, never negative
        """
        if self.custom_delay is not None:
            delay = self.custom_delay(attempt, error, context or RetryContext(), self)
        else:
            delay = self.initial_delay_ms * (attempt + 1) * self.backoff_multiplier
            if self.max_delay_ms is not None:
                delay = min(delay, self.max_delay_ms)
        return max(float(delay), 0.0)


class DelayedResolver(BaseResolver[X]):
    """Retries after a delay until ``max_retries`` is used up.

    The carried context is passed through unchanged. The sleep returns
    early when the run's token fires; the engine then stops at its next
    cancellation checkpoint.

    Example:
        >>> resolver = DelayedResolver(
        ...     DelayPolicy(max_retries=3, initial_delay_ms=100, max_delay_ms=1000),
        ...     can_handle_error=server_error_filter,
        ... )
    """

    def __init__(
        self,
        configuration: DelayPolicy,
        can_handle_error: FilterLike | None = None,
    ) -> None:
        super().__init__(can_handle_error)
        self._configuration = configuration

    @property
    def configuration(self) -> DelayPolicy:
        """The delay policy."""
        return self._configuration

    async def _resolve(
        self,
        error: Any,
        attempt: int,
        context: RetryContext[X],
        token: CancelToken,
    ) -> ErrorResolution[X]:
        delay_ms = self._configuration.calculate_delay_ms(attempt, error, context)
        remaining = self._configuration.max_retries - attempt
        if remaining > 0:
            logger.debug("Delaying retry", attempt=attempt, delay_ms=delay_ms, remaining=remaining)
        interrupted = await sleep(delay_ms / 1000.0, token)
        if interrupted:
            logger.debug("Retry delay interrupted", attempt=attempt)
        return ErrorResolution(remaining_attempts=remaining, context=context)


def delayed_resolver(
    configuration: DelayPolicy,
    can_handle_error: FilterLike | None = None,
) -> DelayedResolver[Any]:
    """Create a delayed resolver.

    Args:
        configuration: Delay policy
        can_handle_error: Optional filter; rejected errors are declined

    Returns:
        The resolver
    """
    return DelayedResolver(configuration, can_handle_error)
