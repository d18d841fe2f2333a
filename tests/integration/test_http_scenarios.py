"""
Integration tests retrying HTTP requests.

Requests go through httpx with pytest-httpx standing in for the
network, so status-code and keyword filters see real httpx errors.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest
import pytest_asyncio

from advanced_retry import (
    CancelToken,
    CustomResolution,
    DelayPolicy,
    OperationAbortedError,
    any_filters,
    custom_resolver,
    delayed_resolver,
    execute_with_retry,
    execute_with_retry_all,
    keyword_filter_any,
    server_error_filter,
    status_code_filter_any,
)

PRIMARY_URL = "https://primary.example.com/v1/profile"
BACKUP_URL = "https://backup.example.com/v1/profile"


def mock_profile_response(name: str = "Ada", source: str = "primary") -> dict:
    """Create a mock profile payload."""
    return {"id": 42, "name": name, "source": source}


def fetch_profile(client: httpx.AsyncClient, default_url: str = PRIMARY_URL):
    """Build an operation fetching a profile, honouring a context URL."""

    async def operation(context, token):
        url = (context.data or {}).get("url", default_url)
        response = await client.get(url)
        response.raise_for_status()
        return response.json()

    return operation


@pytest_asyncio.fixture
async def http_client():
    """An AsyncClient closed after the test."""
    async with httpx.AsyncClient(timeout=5.0) as client:
        yield client


class TestHttpRetry:
    """Retrying HTTP requests with filters."""

    @pytest.mark.asyncio
    async def test_server_errors_retried(self, httpx_mock, http_client) -> None:
        """Test 503 responses are retried until a 200 arrives."""
        httpx_mock.add_response(url=PRIMARY_URL, status_code=503)
        httpx_mock.add_response(url=PRIMARY_URL, status_code=503)
        httpx_mock.add_response(url=PRIMARY_URL, json=mock_profile_response())

        result = await execute_with_retry(
            fetch_profile(http_client),
            [
                delayed_resolver(
                    DelayPolicy(max_retries=3, initial_delay_ms=1),
                    can_handle_error=server_error_filter,
                )
            ],
        )

        assert result.success is True
        assert result.result["name"] == "Ada"
        assert result.total_attempts == 3
        assert len(httpx_mock.get_requests()) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, httpx_mock, http_client) -> None:
        """Test a 404 is declined by a server-error filter and fails at once."""
        httpx_mock.add_response(url=PRIMARY_URL, status_code=404)

        result = await execute_with_retry(
            fetch_profile(http_client),
            [
                delayed_resolver(
                    DelayPolicy(max_retries=3), can_handle_error=server_error_filter
                )
            ],
        )

        assert result.success is False
        assert isinstance(result.error, httpx.HTTPStatusError)
        assert result.error.response.status_code == 404
        assert result.total_attempts == 1

    @pytest.mark.asyncio
    async def test_rate_limit_or_timeout(self, httpx_mock, http_client) -> None:
        """Test a combined filter covers both rate limits and read timeouts."""
        httpx_mock.add_response(url=PRIMARY_URL, status_code=429)
        httpx_mock.add_exception(httpx.ReadTimeout("read timed out"), url=PRIMARY_URL)
        httpx_mock.add_response(url=PRIMARY_URL, json=mock_profile_response())

        transient = any_filters(
            [status_code_filter_any([429]), keyword_filter_any(["timed out"])]
        )
        result = await execute_with_retry(
            fetch_profile(http_client),
            [delayed_resolver(DelayPolicy(max_retries=5), can_handle_error=transient)],
        )

        assert result.success is True
        assert result.total_attempts == 3

    @pytest.mark.asyncio
    async def test_failover_to_backup(self, httpx_mock, http_client) -> None:
        """Test a custom resolver redirects the next attempt to a backup host."""
        httpx_mock.add_response(url=PRIMARY_URL, status_code=502)
        httpx_mock.add_response(url=BACKUP_URL, json=mock_profile_response(source="backup"))

        def switch_to_backup(error, attempt, configuration, data, token):
            return CustomResolution(
                remaining_attempts=configuration["max_failovers"] - attempt,
                context={"url": configuration["backup_url"]},
            )

        result = await execute_with_retry(
            fetch_profile(http_client),
            [
                custom_resolver(
                    {"backup_url": BACKUP_URL, "max_failovers": 1},
                    switch_to_backup,
                    can_handle_error=server_error_filter,
                )
            ],
        )

        assert result.success is True
        assert result.result["source"] == "backup"
        assert [str(r.url) for r in httpx_mock.get_requests()] == [PRIMARY_URL, BACKUP_URL]

    @pytest.mark.asyncio
    async def test_fan_out(self, httpx_mock, http_client) -> None:
        """Test several requests retried concurrently settle independently."""
        httpx_mock.add_response(url=PRIMARY_URL, json=mock_profile_response())
        httpx_mock.add_response(url=BACKUP_URL, status_code=500)
        httpx_mock.add_response(url=BACKUP_URL, status_code=500)

        results = await execute_with_retry_all(
            [fetch_profile(http_client), fetch_profile(http_client, BACKUP_URL)],
            [
                delayed_resolver(
                    DelayPolicy(max_retries=1), can_handle_error=server_error_filter
                )
            ],
        )

        assert results[0].success is True
        assert results[1].success is False
        assert results[1].total_attempts == 2

    @pytest.mark.asyncio
    async def test_abort_stops_retries(self, httpx_mock, http_client) -> None:
        """Test an external abort ends a run waiting between requests."""
        httpx_mock.add_response(url=PRIMARY_URL, status_code=503)

        token = CancelToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel)
        result = await execute_with_retry(
            fetch_profile(http_client),
            [
                delayed_resolver(
                    DelayPolicy(max_retries=3, initial_delay_ms=5_000),
                    can_handle_error=server_error_filter,
                )
            ],
            cancel_token=token,
        )

        assert isinstance(result.error, OperationAbortedError)
        assert len(httpx_mock.get_requests()) == 1
