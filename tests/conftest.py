"""Root pytest fixtures for advanced-retry tests."""

from __future__ import annotations

from typing import Any

import pytest

from advanced_retry.resolvers import RetryContext


class FlakyOperation:
    """Async operation that fails a fixed number of times, then succeeds."""

    def __init__(
        self,
        failures: int,
        result: Any = "ok",
        error: Exception | None = None,
    ) -> None:
        self.failures = failures
        self.result = result
        self.error = error or Exception("retry")
        self.calls = 0
        self.contexts: list[RetryContext[Any]] = []

    async def __call__(self, context: RetryContext[Any], token: Any) -> Any:
        self.calls += 1
        self.contexts.append(context)
        if self.failures < 0 or self.calls <= self.failures:
            raise self.error
        return self.result


class StatusError(Exception):
    """Exception carrying an HTTP-style ``status`` attribute."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


@pytest.fixture
def context() -> RetryContext[Any]:
    """An empty retry context."""
    return RetryContext()


@pytest.fixture
def flaky():
    """Factory for FlakyOperation; ``failures=-1`` fails forever."""
    return FlakyOperation
