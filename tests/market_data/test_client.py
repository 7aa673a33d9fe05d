"""Tests for the historical price client.

Uses pytest-httpx for HTTP mocking. Each client gets its own zero-interval
ThrottleGate and asyncio.sleep is patched in the retry path, so tests run
instantly and the backoff schedule can be asserted exactly.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio

from tradesim.common.exceptions import (
    DataFetchError,
    DataParseError,
    DataUnavailableError,
    RateLimitExceededError,
)
from tradesim.market_data.client import HistoricalDataClient
from tradesim.market_data.rate_limiter import ThrottleGate
from tests.factories import make_chart_payload, make_series

BASE_URL = "https://chart.example.test"

# ─── Fixtures ───


@pytest.fixture
def mock_sleep():
    """Capture backoff sleeps instead of waiting."""
    with patch("tradesim.market_data.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest_asyncio.fixture
async def client():
    c = HistoricalDataClient(
        gate=ThrottleGate(min_interval_seconds=0.0),
        base_url=BASE_URL,
        max_retries=3,
        backoff_base_seconds=1.0,
    )
    yield c
    await c.close()


def _payload(closes: list[float], start: date = date(2024, 3, 4)) -> dict:
    return make_chart_payload(make_series(closes, start=start))


# ─── Successful Fetches ───


class TestFetchSuccess:
    """Happy path requests and responses."""

    @pytest.mark.asyncio
    async def test_returns_bars(self, httpx_mock, client):
        """A 200 chart payload is parsed into bars."""
        httpx_mock.add_response(json=_payload([100.0, 101.0, 102.0]))

        bars = await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 6))

        assert [b.close for b in bars] == [100.0, 101.0, 102.0]
        assert bars[0].date == date(2024, 3, 4)

    @pytest.mark.asyncio
    async def test_request_shape(self, httpx_mock, client):
        """URL path, epoch range and query flags match the chart API."""
        httpx_mock.add_response(json=_payload([100.0]))

        await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 6))

        request = httpx_mock.get_requests()[0]
        assert request.method == "GET"
        assert request.url.host == "chart.example.test"
        assert request.url.path == "/v8/finance/chart/AAPL"
        params = request.url.params
        assert params["period1"] == str(int(datetime(2024, 3, 4, tzinfo=UTC).timestamp()))
        assert params["period2"] == str(int(datetime(2024, 3, 7, tzinfo=UTC).timestamp()))
        assert params["interval"] == "1d"
        assert params["includeAdjustedClose"] == "true"

    @pytest.mark.asyncio
    async def test_sends_browser_user_agent(self, httpx_mock, client):
        """Requests carry the configured User-Agent header."""
        httpx_mock.add_response(json=_payload([100.0]))
        await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))
        assert httpx_mock.get_requests()[0].headers["User-Agent"].startswith("Mozilla/5.0")

    @pytest.mark.asyncio
    async def test_index_symbol_is_escaped(self, httpx_mock, client):
        """Index symbols like ^GSPC are sent as a single path segment."""
        httpx_mock.add_response(json=_payload([100.0]))
        await client.fetch("^GSPC", date(2024, 3, 4), date(2024, 3, 4))
        assert "%5EGSPC" in str(httpx_mock.get_requests()[0].url)

    @pytest.mark.asyncio
    async def test_bars_outside_range_are_dropped(self, httpx_mock, client):
        """Only bars between start and end (inclusive) are returned."""
        httpx_mock.add_response(json=_payload([99.0, 100.0, 101.0, 102.0], start=date(2024, 3, 3)))

        bars = await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 5))

        assert [b.date for b in bars] == [date(2024, 3, 4), date(2024, 3, 5)]

    @pytest.mark.asyncio
    async def test_empty_result_returns_empty_list(self, httpx_mock, client):
        """No sessions in range is not an error at this layer."""
        httpx_mock.add_response(json={"chart": {"result": [], "error": None}})
        assert await client.fetch("AAPL", date(2024, 3, 9), date(2024, 3, 10)) == []


# ─── Rate-Limit Retries ───


class TestRateLimitRetries:
    """HTTP 429 handling with exponential backoff."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, httpx_mock, client, mock_sleep):
        """Three 429s then a 200 succeed after backoffs of 1, 2 and 4 seconds."""
        for _ in range(3):
            httpx_mock.add_response(status_code=429)
        httpx_mock.add_response(json=_payload([100.0]))

        bars = await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))

        assert len(bars) == 1
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0, 4.0]
        assert len(httpx_mock.get_requests()) == 4

    @pytest.mark.asyncio
    async def test_raises_after_max_retries(self, httpx_mock, client, mock_sleep):
        """A fourth 429 exhausts the retries and raises."""
        for _ in range(4):
            httpx_mock.add_response(status_code=429)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))

        assert isinstance(exc_info.value, DataFetchError)
        assert exc_info.value.context["retries"] == 3
        assert mock_sleep.await_count == 3
        assert len(httpx_mock.get_requests()) == 4

    @pytest.mark.asyncio
    async def test_gate_acquired_before_every_attempt(self, httpx_mock, mock_sleep):
        """Retries pass the throttle gate too."""
        gate = ThrottleGate(min_interval_seconds=0.0)
        gate.acquire = AsyncMock(return_value=0.0)
        httpx_mock.add_response(status_code=429)
        httpx_mock.add_response(status_code=429)
        httpx_mock.add_response(json=_payload([100.0]))

        async with HistoricalDataClient(gate=gate, base_url=BASE_URL) as c:
            await c.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))

        assert gate.acquire.await_count == 3

    def test_backoff_delay_doubles(self):
        """Delay is base × 2^retry."""
        c = HistoricalDataClient(backoff_base_seconds=3.0)
        assert [c.backoff_delay(n) for n in range(3)] == [3.0, 6.0, 12.0]


# ─── Other Failures ───


class TestFetchFailures:
    """Errors surfaced without retrying."""

    @pytest.mark.asyncio
    async def test_404_is_unavailable(self, httpx_mock, client):
        """Unknown symbols map to DataUnavailableError."""
        httpx_mock.add_response(status_code=404)
        with pytest.raises(DataUnavailableError):
            await client.fetch("NOPE", date(2024, 3, 4), date(2024, 3, 4))

    @pytest.mark.asyncio
    async def test_server_error_not_retried(self, httpx_mock, client, mock_sleep):
        """A 500 raises DataFetchError on the first attempt."""
        httpx_mock.add_response(status_code=500)

        with pytest.raises(DataFetchError) as exc_info:
            await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))

        assert not isinstance(exc_info.value, RateLimitExceededError)
        assert exc_info.value.context["status"] == 500
        mock_sleep.assert_not_awaited()
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_network_error(self, httpx_mock, client):
        """Connection failures raise DataFetchError."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))
        with pytest.raises(DataFetchError, match="Network error"):
            await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))

    @pytest.mark.asyncio
    async def test_invalid_json(self, httpx_mock, client):
        """A body that is not JSON raises DataParseError."""
        httpx_mock.add_response(text="<html>Service unavailable</html>")
        with pytest.raises(DataParseError):
            await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))

    @pytest.mark.asyncio
    async def test_malformed_payload(self, httpx_mock, client):
        """JSON without the chart structure raises DataParseError."""
        httpx_mock.add_response(json={"unexpected": True})
        with pytest.raises(DataParseError):
            await client.fetch("AAPL", date(2024, 3, 4), date(2024, 3, 4))


# ─── Lifecycle ───


class TestClientLifecycle:
    """Ownership of the underlying httpx client."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self):
        """Leaving the context closes a client this instance created."""
        async with HistoricalDataClient() as c:
            pass
        assert c.client.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self):
        """An injected httpx client stays open for its owner."""
        http = httpx.AsyncClient()
        c = HistoricalDataClient(http_client=http)
        await c.close()
        assert not http.is_closed
        await http.aclose()

    def test_defaults_from_settings(self):
        """Unset constructor args come from settings."""
        c = HistoricalDataClient()
        assert c.base_url == "https://chart.example.test"
        assert c.max_retries == 3
