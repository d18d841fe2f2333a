"""
Status-code filters for HTTP-style errors.

Status codes are looked up on the error itself and on a nested
``response``, which covers httpx and requests exceptions as well as
plain dictionaries.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from advanced_retry.filters.base import ErrorFilter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from advanced_retry.resolvers.base import RetryContext

# Checked in order on the error, then on error.response
_STATUS_FIELDS = ("status", "status_code", "statusCode")

_SCALARS = (str, bytes, int, float, bool, type(None))


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _status_of(obj: Any) -> int | None:
    for name in _STATUS_FIELDS:
        value = _field(obj, name)
        if isinstance(value, bool):
            continue
        if isinstance(value, int) or (isinstance(value, float) and value.is_integer()):
            return int(value)
    return None


def error_to_status_code(error: Any) -> int | None:
    """Extract a numeric status code from an error.

    Checks ``status``, ``status_code`` / ``statusCode`` on the error,
    then the same fields on ``error.response``. Mappings are read by key,
    other objects by attribute. Whole-number floats count as codes.

    Returns:
        The status code, or None if the error carries none
    """
    if isinstance(error, _SCALARS):
        return None

    status = _status_of(error)
    if status is not None:
        return status

    response = _field(error, "response")
    if response is None or isinstance(response, _SCALARS):
        return None
    return _status_of(response)


class StatusCodeFilter(ErrorFilter[Any]):
    """Matches errors whose status code is one of a fixed set."""

    def __init__(self, status_codes: Iterable[int]) -> None:
        self._status_codes = frozenset(status_codes)

    @property
    def status_codes(self) -> frozenset[int]:
        """Accepted status codes."""
        return self._status_codes

    def can_handle(self, error: Any, attempt: int, context: RetryContext[Any]) -> bool:
        status = error_to_status_code(error)
        return status is not None and status in self._status_codes


class StatusCodeRangeFilter(ErrorFilter[Any]):
    """Matches errors whose status code lies in ``[minimum, maximum]``."""

    def __init__(self, minimum: int, maximum: int) -> None:
        if minimum > maximum:
            raise ValueError(f"minimum ({minimum}) must not exceed maximum ({maximum})")
        self._minimum = minimum
        self._maximum = maximum

    @property
    def bounds(self) -> tuple[int, int]:
        """Inclusive (minimum, maximum) bounds."""
        return self._minimum, self._maximum

    def can_handle(self, error: Any, attempt: int, context: RetryContext[Any]) -> bool:
        status = error_to_status_code(error)
        return status is not None and self._minimum <= status <= self._maximum


def status_code_filter_any(status_codes: Iterable[int]) -> StatusCodeFilter:
    """Match errors carrying any of the given status codes."""
    return StatusCodeFilter(status_codes)


def status_code_filter_range(minimum: int, maximum: int) -> StatusCodeRangeFilter:
    """Match errors whose status code lies in the inclusive range."""
    return StatusCodeRangeFilter(minimum, maximum)


server_error_filter = status_code_filter_range(500, 599)
client_error_filter = status_code_filter_range(400, 499)
redirect_filter = status_code_filter_range(300, 399)
