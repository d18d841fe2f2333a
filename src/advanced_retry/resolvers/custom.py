"""
Custom resolver: delegate the retry decision to a caller callback.

Useful for recovery with side effects, such as switching to a backup
endpoint and passing its address to the next attempt via the context.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from advanced_retry.resolvers.base import BaseResolver, ErrorResolution, RetryContext
from advanced_retry.utils import maybe_await

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from advanced_retry.cancel import CancelToken
    from advanced_retry.filters import FilterLike

C = TypeVar("C")
X = TypeVar("X")


@dataclass(frozen=True)
class CustomResolution(Generic[X]):
    """Decision returned by a custom resolver callback.

    Attributes:
        remaining_attempts: Attempts left; negative declines the error
        unrecoverable: Stop the whole run
        context: Data handed to the next attempt and the next callback call
    """

    remaining_attempts: int
    unrecoverable: bool = False
    context: X | None = None


class CustomResolver(BaseResolver[X], Generic[C, X]):
    """Resolver whose decision is computed by ``callback``.

    The callback is called as ``callback(error, attempt, configuration,
    data, token)`` where ``data`` is the context data it returned last
    time (None on its first call). It may be synchronous or async.

    Example:
        >>> def switch_server(error, attempt, config, data, token):
        ...     return CustomResolution(
        ...         remaining_attempts=config["max_retries"] - attempt,
        ...         context={"server": "backup"},
        ...     )
        >>> resolver = CustomResolver({"max_retries": 3}, switch_server)
    """

    def __init__(
        self,
        configuration: C,
        callback: Callable[
            [Any, int, C, X | None, CancelToken],
            CustomResolution[X] | Awaitable[CustomResolution[X]],
        ],
        can_handle_error: FilterLike | None = None,
    ) -> None:
        super().__init__(can_handle_error)
        self._configuration = configuration
        self._callback = callback

    @property
    def configuration(self) -> C:
        """The configuration passed to the callback."""
        return self._configuration

    async def _resolve(
        self,
        error: Any,
        attempt: int,
        context: RetryContext[X],
        token: CancelToken,
    ) -> ErrorResolution[X]:
        outcome = await maybe_await(
            self._callback(error, attempt, self._configuration, context.data, token)
        )
        if not isinstance(outcome, CustomResolution):
            raise TypeError(
                f"Resolver callback must return CustomResolution, got {type(outcome).__name__}"
            )
        return ErrorResolution(
            remaining_attempts=outcome.remaining_attempts,
            unrecoverable=outcome.unrecoverable,
            context=RetryContext(outcome.context),
        )


def custom_resolver(
    configuration: C,
    callback: Callable[
        [Any, int, C, X | None, CancelToken],
        CustomResolution[X] | Awaitable[CustomResolution[X]],
    ],
    can_handle_error: FilterLike | None = None,
) -> CustomResolver[C, X]:
    """Create a custom resolver.

    Args:
        configuration: Arbitrary configuration handed to the callback
        callback: Computes the resolution
        can_handle_error: Optional filter; rejected errors are declined

    Returns:
        The resolver
    """
    return CustomResolver(configuration, callback, can_handle_error)
