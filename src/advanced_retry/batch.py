"""
Multi-operation runner.

Runs independent operations concurrently, each through its own retry
run sharing the resolver chain, timeout and external token. Results are
returned in input order once every run has settled; a failing run never
cuts the others short.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from advanced_retry.retry import RetryResult, execute_with_retry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from advanced_retry.cancel import CancelToken
    from advanced_retry.resolvers import ErrorResolver
    from advanced_retry.retry import Operation


async def execute_with_retry_all(
    operations: Sequence[Operation[Any]],
    error_resolvers: Sequence[ErrorResolver[Any]] | None = None,
    *,
    overall_timeout_ms: float | None = None,
    cancel_token: CancelToken | None = None,
    max_concurrent: int | None = None,
) -> list[RetryResult[Any]]:
    """Execute operations concurrently, each with retry.

    Args:
        operations: Operations to run, ``operation(context, token)``
        error_resolvers: Resolver chain shared by every run
        overall_timeout_ms: Time budget applied to each run separately
        cancel_token: External cancellation source shared by every run
        max_concurrent: Optional cap on runs in flight at once

    Returns:
        One RetryResult per operation, in input order

    Example:
        >>> results = await execute_with_retry_all(
        ...     [fetch_user, fetch_orders],
        ...     [delayed_resolver(DelayPolicy(max_retries=3))],
        ... )
        >>> [r.success for r in results]
    """
    if max_concurrent is not None and max_concurrent < 1:
        raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")

    resolvers = list(error_resolvers or [])
    semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None

    async def run_one(operation: Operation[Any]) -> RetryResult[Any]:
        if semaphore is None:
            return await execute_with_retry(
                operation,
                resolvers,
                overall_timeout_ms=overall_timeout_ms,
                cancel_token=cancel_token,
            )
        async with semaphore:
            return await execute_with_retry(
                operation,
                resolvers,
                overall_timeout_ms=overall_timeout_ms,
                cancel_token=cancel_token,
            )

    results = await asyncio.gather(*(run_one(op) for op in operations))
    return list(results)
