"""
Small helpers shared across the package.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it as is.

    Lets operations, resolvers and callbacks be plain functions or
    coroutine functions interchangeably.
    """
    if inspect.isawaitable(value):
        return await value
    return value  # type: ignore[return-value]
