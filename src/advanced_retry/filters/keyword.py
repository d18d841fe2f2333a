"""
Keyword filters: match errors by substring in their string form.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from advanced_retry.filters.base import ErrorFilter

if TYPE_CHECKING:
    from collections.abc import Sequence

    from advanced_retry.resolvers.base import RetryContext


def error_to_string(error: Any) -> str:
    """Convert an error to the text keyword filters match against.

    - exceptions: their message (``str(error)``)
    - strings: unchanged
    - mappings, lists and tuples: JSON serialization
    - anything else: ``str(error)``
    """
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    if isinstance(error, (Mapping, list, tuple)):
        return json.dumps(error, default=str)
    return str(error)


class KeywordFilter(ErrorFilter[Any]):
    """Matches errors whose text contains the configured keywords.

    Matching is a case-sensitive substring test. With an empty keyword
    list, ``require_all=False`` matches nothing and ``require_all=True``
    matches everything.

    Example:
        >>> f = KeywordFilter(["timeout", "network"])
        >>> f.can_handle(Exception("Connection timeout occurred"), 0, RetryContext())
        True
    """

    def __init__(self, keywords: Sequence[str], require_all: bool = False) -> None:
        """Initialize keyword filter.

        Args:
            keywords: Keywords to look for
            require_all: Require every keyword instead of any one
        """
        self._keywords = list(keywords)
        self._require_all = require_all

    @property
    def keywords(self) -> list[str]:
        """Get the list of keywords."""
        return list(self._keywords)

    @property
    def require_all(self) -> bool:
        """Whether every keyword must be present."""
        return self._require_all

    def can_handle(self, error: Any, attempt: int, context: RetryContext[Any]) -> bool:
        text = error_to_string(error)
        found = (keyword in text for keyword in self._keywords)
        return all(found) if self._require_all else any(found)


def keyword_filter_any(keywords: Sequence[str]) -> KeywordFilter:
    """Match errors containing at least one of the keywords."""
    return KeywordFilter(keywords)


def keyword_filter_all(keywords: Sequence[str]) -> KeywordFilter:
    """Match errors containing every keyword."""
    return KeywordFilter(keywords, require_all=True)
