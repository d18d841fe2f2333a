"""
Base classes for error filters.

A filter is a boolean predicate over ``(error, attempt, context)`` that
gates whether a resolver handles an error. Filters compose with
``all_filters``, ``any_filters`` and ``none_filters``; every place that
accepts a filter also accepts a bare callable with the same signature.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

if TYPE_CHECKING:
    from collections.abc import Sequence

    from advanced_retry.resolvers.base import RetryContext

X = TypeVar("X")

FilterFunction = Callable[[Any, int, "RetryContext[Any]"], bool]


class ErrorFilter(Generic[X]):
    """Base class for error filters.

    Subclasses implement ``can_handle``. Instances are also callable, so
    a filter can be used anywhere a predicate function is expected.

    Example:
        >>> class NotFound(ErrorFilter):
        ...     def can_handle(self, error, attempt, context):
        ...         return isinstance(error, FileNotFoundError)
    """

    def can_handle(self, error: Any, attempt: int, context: RetryContext[X]) -> bool:
        """Return True if the error should be handled.

        Args:
            error: The error raised by the operation
            attempt: Attempt number relative to the resolver (0-based)
            context: Context carried from the previous resolver invocation
        """
        raise NotImplementedError("Subclasses must implement can_handle")

    def __call__(self, error: Any, attempt: int, context: RetryContext[X]) -> bool:
        return self.can_handle(error, attempt, context)


class FunctionFilter(ErrorFilter[X]):
    """Adapts a bare predicate function to the ErrorFilter interface."""

    def __init__(self, predicate: Callable[[Any, int, RetryContext[X]], bool]) -> None:
        self._predicate = predicate

    @property
    def predicate(self) -> Callable[[Any, int, RetryContext[X]], bool]:
        """The wrapped predicate."""
        return self._predicate

    def can_handle(self, error: Any, attempt: int, context: RetryContext[X]) -> bool:
        return bool(self._predicate(error, attempt, context))


FilterLike = Union[ErrorFilter[Any], FilterFunction]


def to_error_filter(candidate: FilterLike) -> ErrorFilter[Any]:
    """Normalize a filter or predicate function into an ErrorFilter.

    Raises:
        TypeError: If the candidate is neither a filter nor callable
    """
    if isinstance(candidate, ErrorFilter):
        return candidate
    if callable(candidate):
        return FunctionFilter(candidate)
    raise TypeError(f"Expected an ErrorFilter or a callable, got {type(candidate).__name__}")


class MatchMode(str, Enum):
    """How a composite filter combines its members."""

    ALL = "all"
    ANY = "any"
    NONE = "none"


class CompositeFilter(ErrorFilter[X]):
    """Combines filters, evaluating them left to right with short-circuit.

    - ``ALL`` stops at the first filter returning False
    - ``ANY`` stops at the first filter returning True
    - ``NONE`` stops at the first filter returning True (negated ``ANY``)
    """

    def __init__(self, filters: Sequence[FilterLike], mode: MatchMode = MatchMode.ALL) -> None:
        self._filters = [to_error_filter(f) for f in filters]
        self._mode = MatchMode(mode)

    @property
    def filters(self) -> list[ErrorFilter[Any]]:
        """Normalized member filters."""
        return list(self._filters)

    @property
    def mode(self) -> MatchMode:
        """Combination mode."""
        return self._mode

    def can_handle(self, error: Any, attempt: int, context: RetryContext[X]) -> bool:
        results = (f.can_handle(error, attempt, context) for f in self._filters)
        if self._mode == MatchMode.ALL:
            return all(results)
        if self._mode == MatchMode.ANY:
            return any(results)
        return not any(results)


def all_filters(filters: Sequence[FilterLike]) -> CompositeFilter[Any]:
    """Create a filter that requires every given filter to pass."""
    return CompositeFilter(filters, MatchMode.ALL)


def any_filters(filters: Sequence[FilterLike]) -> CompositeFilter[Any]:
    """Create a filter that requires at least one given filter to pass."""
    return CompositeFilter(filters, MatchMode.ANY)


def none_filters(filters: Sequence[FilterLike]) -> CompositeFilter[Any]:
    """Create a filter that passes only if none of the given filters pass."""
    return CompositeFilter(filters, MatchMode.NONE)
