"""
Error filters - composable predicates deciding which errors a resolver handles.

This module provides:
- ErrorFilter / FunctionFilter: Filter base class and predicate adapter
- all_filters / any_filters / none_filters: Short-circuiting combinators
- KeywordFilter: Substring match on the error text
- StatusCodeFilter / StatusCodeRangeFilter: HTTP-style status code match
"""

from advanced_retry.filters.base import (
    CompositeFilter,
    ErrorFilter,
    FilterFunction,
    FilterLike,
    FunctionFilter,
    MatchMode,
    all_filters,
    any_filters,
    none_filters,
    to_error_filter,
)
from advanced_retry.filters.keyword import (
    KeywordFilter,
    error_to_string,
    keyword_filter_all,
    keyword_filter_any,
)
from advanced_retry.filters.status_code import (
    StatusCodeFilter,
    StatusCodeRangeFilter,
    client_error_filter,
    error_to_status_code,
    redirect_filter,
    server_error_filter,
    status_code_filter_any,
    status_code_filter_range,
)

__all__ = [
    # Base
    "CompositeFilter",
    "ErrorFilter",
    "FilterFunction",
    "FilterLike",
    "FunctionFilter",
    # Keyword
    "KeywordFilter",
    "MatchMode",
    # Status code
    "StatusCodeFilter",
    "StatusCodeRangeFilter",
    "all_filters",
    "any_filters",
    "client_error_filter",
    "error_to_status_code",
    "error_to_string",
    "keyword_filter_all",
    "keyword_filter_any",
    "none_filters",
    "redirect_filter",
    "server_error_filter",
    "status_code_filter_any",
    "status_code_filter_range",
    "to_error_filter",
]
