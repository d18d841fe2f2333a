"""Tests for filters module."""

import json

import pytest

from advanced_retry.filters import (
    CompositeFilter,
    ErrorFilter,
    FunctionFilter,
    KeywordFilter,
    MatchMode,
    StatusCodeRangeFilter,
    all_filters,
    any_filters,
    client_error_filter,
    error_to_status_code,
    error_to_string,
    keyword_filter_all,
    keyword_filter_any,
    none_filters,
    redirect_filter,
    server_error_filter,
    status_code_filter_any,
    status_code_filter_range,
    to_error_filter,
)
from advanced_retry.resolvers import RetryContext


class Spy:
    """Predicate returning a fixed value and counting its calls."""

    def __init__(self, value: bool) -> None:
        self.value = value
        self.calls = 0

    def __call__(self, error, attempt, context) -> bool:
        self.calls += 1
        return self.value


class AlwaysFilter(ErrorFilter):
    def __init__(self, value: bool) -> None:
        self.value = value

    def can_handle(self, error, attempt, context) -> bool:
        return self.value


class TestToErrorFilter:
    """Tests for to_error_filter."""

    def test_wraps_function(self, context) -> None:
        """Test a bare function is adapted."""
        f = to_error_filter(lambda e, a, c: True)
        assert isinstance(f, FunctionFilter)
        assert f.can_handle(Exception(), 0, context) is True

    def test_returns_filter_unchanged(self) -> None:
        """Test an ErrorFilter is returned as is."""
        f = AlwaysFilter(True)
        assert to_error_filter(f) is f

    def test_rejects_non_callable(self) -> None:
        """Test non-callables are rejected."""
        with pytest.raises(TypeError):
            to_error_filter(42)  # type: ignore[arg-type]

    def test_filter_is_callable(self, context) -> None:
        """Test filters can be called like predicates."""
        assert AlwaysFilter(False)(Exception(), 0, context) is False


class TestAllFilters:
    """Tests for all_filters."""

    def test_mixed_functions_and_filters(self, context) -> None:
        """Test a mix of functions and filter objects."""
        f = all_filters([lambda e, a, c: True, AlwaysFilter(True)])
        assert f.can_handle(Exception(), 0, context) is True

    def test_false_if_any_false(self, context) -> None:
        """Test one failing member fails the whole filter."""
        f = all_filters([AlwaysFilter(True), lambda e, a, c: False])
        assert f.can_handle(Exception(), 0, context) is False

    def test_short_circuits_on_first_false(self, context) -> None:
        """Test evaluation stops at the first False."""
        first, second, third = Spy(True), Spy(False), Spy(True)
        f = all_filters([first, second, third])
        assert f.can_handle(Exception(), 0, context) is False
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)

    def test_passes_arguments(self) -> None:
        """Test error, attempt and context reach every member."""
        seen = []
        error = ValueError("boom")
        ctx = RetryContext(data={"k": 1})

        def record(e, a, c):
            seen.append((e, a, c))
            return True

        all_filters([record, record]).can_handle(error, 3, ctx)
        assert seen == [(error, 3, ctx), (error, 3, ctx)]

    def test_empty_is_true(self, context) -> None:
        """Test an empty list is vacuously true."""
        assert all_filters([]).can_handle(Exception(), 0, context) is True


class TestAnyFilters:
    """Tests for any_filters."""

    def test_true_if_any_true(self, context) -> None:
        """Test one passing member passes the filter."""
        f = any_filters([lambda e, a, c: False, AlwaysFilter(True)])
        assert f.can_handle(Exception(), 0, context) is True

    def test_false_if_all_false(self, context) -> None:
        """Test all failing members fail the filter."""
        f = any_filters([AlwaysFilter(False), lambda e, a, c: False])
        assert f.can_handle(Exception(), 0, context) is False

    def test_short_circuits_on_first_true(self, context) -> None:
        """Test evaluation stops at the first True."""
        first, second, third = Spy(False), Spy(True), Spy(False)
        assert any_filters([first, second, third]).can_handle(Exception(), 0, context) is True
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)


class TestNoneFilters:
    """Tests for none_filters."""

    def test_true_if_all_false(self, context) -> None:
        """Test no passing member passes the filter."""
        f = none_filters([AlwaysFilter(False), lambda e, a, c: False])
        assert f.can_handle(Exception(), 0, context) is True

    def test_false_if_any_true(self, context) -> None:
        """Test one passing member fails the filter."""
        f = none_filters([AlwaysFilter(False), lambda e, a, c: True])
        assert f.can_handle(Exception(), 0, context) is False

    def test_short_circuits_on_first_true(self, context) -> None:
        """Test evaluation stops at the first True."""
        first, second = Spy(True), Spy(False)
        assert none_filters([first, second]).can_handle(Exception(), 0, context) is False
        assert second.calls == 0


class TestNestedFilters:
    """Tests for nested composition."""

    def test_nested_all_inside_any(self, context) -> None:
        """Test composites can be members of composites."""
        f = any_filters([all_filters([AlwaysFilter(True), AlwaysFilter(False)]), AlwaysFilter(True)])
        assert f.can_handle(Exception(), 0, context) is True

    def test_deeply_nested(self, context) -> None:
        """Test several levels of nesting."""
        f = all_filters(
            [
                any_filters([AlwaysFilter(False), all_filters([AlwaysFilter(True)])]),
                none_filters([AlwaysFilter(False)]),
            ]
        )
        assert f.can_handle(Exception(), 0, context) is True

    def test_composite_exposes_mode(self) -> None:
        """Test composite metadata."""
        f = none_filters([AlwaysFilter(True)])
        assert isinstance(f, CompositeFilter)
        assert f.mode == MatchMode.NONE
        assert len(f.filters) == 1


class TestErrorToString:
    """Tests for error_to_string."""

    def test_exception_message(self) -> None:
        """Test exceptions convert to their message."""
        assert error_to_string(ValueError("bad value")) == "bad value"

    def test_string_unchanged(self) -> None:
        """Test strings are used directly."""
        assert error_to_string("plain") == "plain"

    def test_mapping_serialized(self) -> None:
        """Test mappings are JSON serialized."""
        data = {"code": "ETIMEDOUT", "retry": True}
        assert error_to_string(data) == json.dumps(data)

    def test_other_values(self) -> None:
        """Test other values use str()."""
        assert error_to_string(42) == "42"
        assert error_to_string(None) == "None"


class TestKeywordFilter:
    """Tests for keyword filters."""

    def test_any_matches(self, context) -> None:
        """Test any-mode matches on one keyword."""
        f = keyword_filter_any(["timeout", "network"])
        assert f.can_handle(Exception("Connection timeout occurred"), 0, context) is True
        assert f.can_handle("network unreachable", 0, context) is True

    def test_any_no_match(self, context) -> None:
        """Test any-mode rejects errors without keywords."""
        f = keyword_filter_any(["timeout", "network"])
        assert f.can_handle(Exception("general error"), 0, context) is False

    def test_case_sensitive(self, context) -> None:
        """Test matching is case sensitive."""
        f = keyword_filter_any(["timeout", "network"])
        assert f.can_handle(Exception("TIMEOUT error"), 0, context) is False

    def test_any_empty_matches_nothing(self, context) -> None:
        """Test an empty any-filter matches nothing."""
        assert keyword_filter_any([]).can_handle("anything", 0, context) is False

    def test_all_requires_every_keyword(self, context) -> None:
        """Test all-mode needs every keyword."""
        f = keyword_filter_all(["connection", "timeout"])
        assert f.can_handle(Exception("connection timeout"), 0, context) is True
        assert f.can_handle(Exception("connection refused"), 0, context) is False

    def test_all_empty_matches_everything(self, context) -> None:
        """Test an empty all-filter is vacuously true."""
        assert keyword_filter_all([]).can_handle("anything", 0, context) is True

    def test_matches_serialized_mapping(self, context) -> None:
        """Test keywords are found in serialized mappings."""
        f = keyword_filter_any(["ECONNRESET"])
        assert f.can_handle({"code": "ECONNRESET"}, 0, context) is True

    def test_properties(self) -> None:
        """Test filter metadata."""
        f = KeywordFilter(["a", "b"], require_all=True)
        assert f.keywords == ["a", "b"]
        assert f.require_all is True


class Response:
    def __init__(self, **fields) -> None:
        self.__dict__.update(fields)


class TestErrorToStatusCode:
    """Tests for error_to_status_code."""

    def test_direct_status(self) -> None:
        """Test a direct status field."""
        assert error_to_status_code({"status": 503}) == 503

    def test_direct_status_code(self) -> None:
        """Test status_code and statusCode fields."""
        assert error_to_status_code({"statusCode": 404}) == 404
        assert error_to_status_code(Response(status_code=418)) == 418

    def test_status_takes_precedence(self) -> None:
        """Test status wins over statusCode."""
        assert error_to_status_code({"status": 500, "statusCode": 404}) == 500

    def test_nested_response(self) -> None:
        """Test nested response fields."""
        assert error_to_status_code({"response": {"status": 502}}) == 502
        assert error_to_status_code({"response": {"statusCode": 429}}) == 429

    def test_exception_with_response(self) -> None:
        """Test exceptions carrying a response object."""
        error = RuntimeError("failed")
        error.response = Response(status_code=401)  # type: ignore[attr-defined]
        assert error_to_status_code(error) == 401

    def test_float_status(self, context) -> None:
        """Test whole-number floats count as status codes."""
        assert error_to_status_code({"status": 503.0}) == 503
        assert error_to_status_code({"response": {"statusCode": 429.0}}) == 429
        assert error_to_status_code({"status": 503.5}) is None
        assert error_to_status_code({"status": True}) is None
        assert status_code_filter_any([503]).can_handle({"status": 503.0}, 0, context) is True

    def test_no_status(self) -> None:
        """Test values without a status code."""
        assert error_to_status_code(Exception("plain")) is None
        assert error_to_status_code({"status": "500"}) is None
        assert error_to_status_code("500") is None
        assert error_to_status_code(500) is None
        assert error_to_status_code(None) is None


class TestStatusCodeFilters:
    """Tests for status-code filters."""

    def test_any(self, context) -> None:
        """Test exact-set matching."""
        f = status_code_filter_any([404, 429])
        assert f.can_handle({"response": {"statusCode": 429}}, 0, context) is True
        assert f.can_handle({"status": 500}, 0, context) is False

    def test_any_without_status(self, context) -> None:
        """Test errors without a status never match."""
        assert status_code_filter_any([500]).can_handle(Exception("x"), 0, context) is False

    def test_range_inclusive(self, context) -> None:
        """Test range bounds are inclusive."""
        f = status_code_filter_range(500, 503)
        assert f.can_handle({"status": 500}, 0, context) is True
        assert f.can_handle({"status": 503}, 0, context) is True
        assert f.can_handle({"status": 504}, 0, context) is False

    def test_range_rejects_inverted_bounds(self) -> None:
        """Test min greater than max is rejected."""
        with pytest.raises(ValueError):
            StatusCodeRangeFilter(599, 500)

    @pytest.mark.parametrize(
        ("status", "server", "client", "redirect"),
        [
            (301, False, False, True),
            (404, False, True, False),
            (503, True, False, False),
            (200, False, False, False),
        ],
    )
    def test_predefined_ranges(self, context, status, server, client, redirect) -> None:
        """Test the predefined 5xx, 4xx and 3xx filters."""
        error = {"status": status}
        assert server_error_filter.can_handle(error, 0, context) is server
        assert client_error_filter.can_handle(error, 0, context) is client
        assert redirect_filter.can_handle(error, 0, context) is redirect
