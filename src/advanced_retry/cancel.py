"""
Cooperative cancellation control.

Provides cancellation tokens, token merging, timeout tokens and a
cancellable sleep. A token is one-shot: once cancelled it stays
cancelled, and listeners registered on it are invoked exactly once.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from advanced_retry.errors import OperationAbortedError, OperationTimeoutError
from advanced_retry.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    CancelListener = Callable[["CancelReason"], Any]

logger = get_logger(__name__)


class CancelReason(str, Enum):
    """Reasons for cancellation."""

    USER_REQUEST = "user_request"
    TIMEOUT = "timeout"
    ERROR = "error"
    SHUTDOWN = "shutdown"


@dataclass
class CancelState:
    """State of a cancellation token.

    Attributes:
        cancelled: Whether cancellation was requested
        reason: Reason for cancellation
        timestamp: Time of cancellation
    """

    cancelled: bool = False
    reason: CancelReason | None = None
    timestamp: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CancelToken:
    """Cancellation token for controlling async operations.

    A CancelToken is handed to retried operations and resolvers, which
    check it (or wait on it) to support cooperative cancellation.

    Example:
        >>> token = CancelToken()
        >>>
        >>> async def fetch(context, token):
        ...     if token.is_cancelled:
        ...         return None
        ...     return await client.get(url)
        >>>
        >>> # Cancel from another task
        >>> token.cancel(CancelReason.USER_REQUEST)
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize cancellation token.

        Args:
            timeout: Optional timeout in seconds after which the token
                cancels itself with ``CancelReason.TIMEOUT``. Requires a
                running event loop.
        """
        self._state = CancelState()
        self._event = asyncio.Event()
        self._listeners: list[CancelListener] = []
        self._timer: asyncio.TimerHandle | None = None

        if timeout is not None:
            self._start_timer(timeout)

    def _start_timer(self, timeout: float) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(timeout, 0.0), self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self.cancel(CancelReason.TIMEOUT)

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation.

        Args:
            reason: Reason for cancellation
            **metadata: Additional metadata

        Returns:
            True if cancellation was newly requested, False if already cancelled
        """
        if self._state.cancelled:
            return False

        self._state.cancelled = True
        self._state.reason = reason
        self._state.timestamp = time.time()
        self._state.metadata.update(metadata)

        self._event.set()
        self._cancel_timer()

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            self._notify(listener, reason)

        return True

    @staticmethod
    def _notify(listener: CancelListener, reason: CancelReason) -> None:
        try:
            result = listener(reason)
            if asyncio.iscoroutine(result):
                _ = asyncio.ensure_future(result)  # noqa: RUF006
        except Exception:
            logger.exception("Cancel listener failed", reason=reason.value)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._state.cancelled

    @property
    def reason(self) -> CancelReason | None:
        """Get cancellation reason."""
        return self._state.reason

    @property
    def state(self) -> CancelState:
        """Get full cancellation state."""
        return self._state

    @property
    def has_pending_timer(self) -> bool:
        """Whether a timeout timer is still scheduled."""
        return self._timer is not None

    @property
    def listener_count(self) -> int:
        """Number of listeners still registered."""
        return len(self._listeners)

    async def wait(self) -> CancelReason:
        """Wait until cancellation is requested.

        Returns:
            Cancellation reason
        """
        await self._event.wait()
        return self._state.reason or CancelReason.USER_REQUEST

    async def wait_with_timeout(self, timeout: float) -> bool:
        """Wait for cancellation with a timeout.

        Args:
            timeout: Timeout in seconds

        Returns:
            True if cancelled, False if timeout occurred
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def add_listener(self, listener: CancelListener) -> None:
        """Register a listener called with the reason on cancellation.

        A listener added to an already cancelled token is called
        immediately and not retained.
        """
        if self._state.cancelled and self._state.reason:
            self._notify(listener, self._state.reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: CancelListener) -> bool:
        """Deregister a listener.

        Returns:
            True if the listener was registered
        """
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    @contextmanager
    def listen(self, listener: CancelListener) -> Iterator[CancelToken]:
        """Register a listener for the duration of a ``with`` block."""
        self.add_listener(listener)
        try:
            yield self
        finally:
            self.remove_listener(listener)

    def raise_if_cancelled(self) -> None:
        """Raise the error matching the cancellation reason.

        Raises:
            OperationTimeoutError: If the token fired because of a timeout
            OperationAbortedError: If the token fired for any other reason
        """
        if not self._state.cancelled:
            return
        if self._state.reason == CancelReason.TIMEOUT:
            raise OperationTimeoutError(timeout_ms=self._state.metadata.get("timeout_ms"))
        raise OperationAbortedError(reason=self._state.reason)

    def dispose(self) -> None:
        """Release the pending timer, if any. Safe to call repeatedly."""
        self._cancel_timer()

    def __enter__(self) -> CancelToken:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class LinkedCancelToken(CancelToken):
    """Token that fires the first time any of its sources fires.

    The reason and metadata of the first firing source are propagated.
    Listeners placed on the sources are removed as soon as one of them
    fires, or when the token is disposed.
    """

    def __init__(self, sources: list[CancelToken]) -> None:
        super().__init__()
        self._sources: list[CancelToken] = []
        for source in sources:
            if self.is_cancelled:
                break
            self._sources.append(source)
            source.add_listener(self._on_source_cancelled)

    def _on_source_cancelled(self, reason: CancelReason) -> None:
        source_metadata: dict[str, Any] = {}
        for source in self._sources:
            if source.is_cancelled and source.reason == reason:
                source_metadata = dict(source.state.metadata)
                break
        self.detach()
        self.cancel(reason, **source_metadata)

    @property
    def sources(self) -> list[CancelToken]:
        """Sources this token is still attached to."""
        return list(self._sources)

    def detach(self) -> None:
        """Remove this token's listeners from every source."""
        sources, self._sources = self._sources, []
        for source in sources:
            source.remove_listener(self._on_source_cancelled)

    def dispose(self) -> None:
        super().dispose()
        self.detach()


def merge_tokens(*sources: CancelToken | None) -> LinkedCancelToken:
    """Merge cancellation sources into one derived token.

    ``None`` entries are ignored. If a source is already cancelled the
    derived token is cancelled before this function returns.

    Example:
        >>> with merge_tokens(timeout_token, user_token) as token:
        ...     await run(token)
    """
    return LinkedCancelToken([s for s in sources if s is not None])


def with_timeout(seconds: float, **metadata: Any) -> CancelToken:
    """Create a token that cancels itself after ``seconds``.

    Dispose the token (or use it as a context manager) to cancel the
    pending timer when the guarded work finishes first.
    """
    token = CancelToken(timeout=seconds)
    token.state.metadata.update(metadata)
    return token


async def sleep(delay: float, token: CancelToken | None = None) -> bool:
    """Sleep for ``delay`` seconds, returning early if ``token`` fires.

    Negative delays sleep zero.

    Returns:
        True if the sleep was interrupted by cancellation
    """
    delay = max(delay, 0.0)
    if token is None:
        await asyncio.sleep(delay)
        return False
    if token.is_cancelled:
        return True
    return await token.wait_with_timeout(delay)
