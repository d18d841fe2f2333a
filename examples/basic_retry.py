#!/usr/bin/env python3
"""
Resolver chain example.

This example demonstrates the main building blocks of advanced-retry:
- A delayed resolver gated by a status-code filter
- A custom resolver that fails over to a backup server
- An overall timeout and an external cancellation token
- Running several operations at once

No network access is needed; the operations simulate failures.

Usage:
    python examples/basic_retry.py
"""

import asyncio

from advanced_retry import (
    CancelToken,
    CustomResolution,
    DelayPolicy,
    LogLevel,
    RetryLogger,
    custom_resolver,
    delayed_resolver,
    execute_with_retry,
    execute_with_retry_all,
    server_error_filter,
)


class ServiceUnavailable(Exception):
    """Simulated HTTP 503."""

    status_code = 503


def flaky_service(failures: int):
    """Build an operation that fails ``failures`` times before succeeding."""
    calls = 0

    async def call(context, token):
        nonlocal calls
        calls += 1
        server = (context.data or {}).get("server", "primary")
        if calls <= failures:
            raise ServiceUnavailable(f"{server} unavailable (call {calls})")
        return f"served by {server} after {calls} calls"

    return call


def switch_server(error, attempt, configuration, data, token):
    """Send the next attempt to the next backup server."""
    servers = configuration["backups"]
    if attempt >= len(servers):
        return CustomResolution(remaining_attempts=0, unrecoverable=True)
    return CustomResolution(
        remaining_attempts=len(servers) - attempt,
        context={"server": servers[attempt]},
    )


async def delayed_then_failover() -> None:
    """Retry with backoff, then fail over to backup servers."""
    print("Delayed retries, then failover...")

    chain = [
        delayed_resolver(
            DelayPolicy(max_retries=2, initial_delay_ms=50, max_delay_ms=200),
            can_handle_error=server_error_filter,
        ),
        custom_resolver({"backups": ["backup-1", "backup-2"]}, switch_server),
    ]
    result = await execute_with_retry(flaky_service(4), chain, overall_timeout_ms=5000)

    print(f"Success: {result.success}")
    print(f"Result: {result.result}")
    print(f"Attempts: {result.total_attempts}")
    print(f"Duration: {result.total_duration_ms:.0f}ms")
    print()


async def cancellation() -> None:
    """Abort a run from outside while it waits between attempts."""
    print("External cancellation...")

    token = CancelToken()
    asyncio.get_running_loop().call_later(0.1, token.cancel)

    result = await execute_with_retry(
        flaky_service(100),
        [delayed_resolver(DelayPolicy(max_retries=10, initial_delay_ms=1000))],
        cancel_token=token,
    )
    print(f"Success: {result.success}")
    print(f"Error: {result.error!r}")
    print(f"Attempts: {result.total_attempts}")
    print()


async def fan_out() -> None:
    """Retry several operations concurrently."""
    print("Fan-out...")

    results = await execute_with_retry_all(
        [flaky_service(0), flaky_service(2), flaky_service(10)],
        [delayed_resolver(DelayPolicy(max_retries=3, initial_delay_ms=10))],
    )
    for i, result in enumerate(results):
        print(f"  op {i}: success={result.success} attempts={result.total_attempts}")


async def main() -> None:
    """Run all examples."""
    RetryLogger.configure(level=LogLevel.INFO, format="text")

    await delayed_then_failover()
    await cancellation()
    await fan_out()


if __name__ == "__main__":
    asyncio.run(main())
