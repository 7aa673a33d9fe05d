"""Historical daily price client for the Yahoo Finance chart API.

Every outbound request passes the shared ThrottleGate first. Rate-limit
responses (HTTP 429) are retried with exponential backoff; every other
failure is surfaced on first occurrence.

Usage:
    from tradesim.market_data.client import HistoricalDataClient

    async with HistoricalDataClient() as client:
        bars = await client.fetch("AAPL", date(2024, 1, 1), date(2024, 12, 31))
"""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime, time, timedelta
from urllib.parse import quote

import httpx

from tradesim.common.config import get_settings
from tradesim.common.exceptions import (
    DataFetchError,
    DataParseError,
    DataUnavailableError,
    RateLimitExceededError,
)
from tradesim.common.logging import get_logger
from tradesim.common.metrics import PRICE_FETCH_RETRIES_TOTAL, PRICE_FETCHES_TOTAL
from tradesim.common.schemas import PricePoint
from tradesim.market_data.parser import parse_chart_payload
from tradesim.market_data.rate_limiter import ThrottleGate, get_throttle_gate

logger = get_logger("MARKET")

CHART_PATH = "/v8/finance/chart/{symbol}"

DEFAULT_HEADERS = {
    "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class HistoricalDataClient:
    """Async client returning daily OHLCV bars for a symbol and date range.

    Args:
        gate: Throttle gate shared by all outbound requests. Defaults to the
            process-wide gate.
        http_client: Optional pre-built httpx.AsyncClient (owned by the caller).
        base_url: Provider base URL. Defaults to settings.
        max_retries: Retries allowed after rate-limit responses.
        backoff_base_seconds: First backoff delay; doubles on each retry.
        timeout_seconds: Per-request HTTP timeout.
    """

    def __init__(
        self,
        gate: ThrottleGate | None = None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        max_retries: int | None = None,
        backoff_base_seconds: float | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self.gate = gate or get_throttle_gate()
        self.base_url = (base_url or settings.market_data_base_url).rstrip("/")
        self.max_retries = settings.market_data_max_retries if max_retries is None else max_retries
        self.backoff_base_seconds = (
            settings.market_data_backoff_base_seconds
            if backoff_base_seconds is None
            else backoff_base_seconds
        )
        timeout = settings.market_data_timeout_seconds if timeout_seconds is None else timeout_seconds

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": settings.market_data_user_agent, **DEFAULT_HEADERS},
        )

    async def __aenter__(self) -> HistoricalDataClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ─── Public API ───

    async def fetch(self, symbol: str, start_date: date, end_date: date) -> list[PricePoint]:
        """Fetch daily bars for ``symbol`` between two dates, both inclusive.

        Args:
            symbol: Ticker symbol (e.g., "AAPL", "^GSPC").
            start_date: First date of the range.
            end_date: Last date of the range.

        Returns:
            Bars sorted ascending with unique dates. Empty when the provider
            has no data for the range.

        Raises:
            DataUnavailableError: The provider does not know the symbol (404).
            RateLimitExceededError: Still rate-limited after all retries.
            DataFetchError: Network failure or any other HTTP error.
            DataParseError: The response is not a valid chart payload.
        """
        logger.info(
            "Fetching price history",
            extra={
                "data": {
                    "symbol": symbol,
                    "start_date": str(start_date),
                    "end_date": str(end_date),
                }
            },
        )

        try:
            payload = await self._get_chart(symbol, start_date, end_date)
            bars = parse_chart_payload(symbol, payload)
        except DataUnavailableError:
            PRICE_FETCHES_TOTAL.labels(outcome="not_found").inc()
            raise
        except DataParseError:
            PRICE_FETCHES_TOTAL.labels(outcome="parse_error").inc()
            raise
        except DataFetchError:
            PRICE_FETCHES_TOTAL.labels(outcome="fetch_error").inc()
            raise

        bars = [b for b in bars if start_date <= b.date <= end_date]
        PRICE_FETCHES_TOTAL.labels(outcome="success" if bars else "empty").inc()

        logger.info(
            "Price history fetched",
            extra={"data": {"symbol": symbol, "bars": len(bars)}},
        )
        return bars

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    # ─── Internals ───

    def backoff_delay(self, retry: int) -> float:
        """Backoff before retry number ``retry`` (0-based): base × 2^retry."""
        return self.backoff_base_seconds * (2**retry)

    async def _get_chart(self, symbol: str, start_date: date, end_date: date) -> object:
        """GET the chart endpoint, retrying only on rate-limit responses."""
        url = f"{self.base_url}{CHART_PATH.format(symbol=quote(symbol, safe=''))}"
        params = {
            "period1": _epoch_seconds(start_date),
            "period2": _epoch_seconds(end_date + timedelta(days=1)),
            "interval": "1d",
            "includeAdjustedClose": "true",
        }

        retry = 0
        while True:
            await self.gate.acquire()
            try:
                response = await self.client.get(url, params=params)
            except httpx.RequestError as exc:
                logger.error(
                    "Network error fetching price history",
                    extra={"data": {"symbol": symbol, "error": str(exc)}},
                )
                raise DataFetchError(
                    f"Network error fetching {symbol}: {exc}",
                    context={"symbol": symbol},
                ) from exc

            if response.status_code == 429:
                if retry >= self.max_retries:
                    logger.error(
                        "Rate limit persisted, retries exhausted",
                        extra={"data": {"symbol": symbol, "retries": retry}},
                    )
                    raise RateLimitExceededError(
                        f"Rate limit exceeded for {symbol} after {retry} retries",
                        context={"symbol": symbol, "retries": retry},
                    )
                wait = self.backoff_delay(retry)
                logger.warning(
                    "Rate limited by provider, retrying",
                    extra={
                        "data": {
                            "symbol": symbol,
                            "attempt": retry + 1,
                            "max_retries": self.max_retries,
                            "wait_seconds": wait,
                        }
                    },
                )
                PRICE_FETCH_RETRIES_TOTAL.inc()
                await asyncio.sleep(wait)
                retry += 1
                continue

            if response.status_code == 404:
                raise DataUnavailableError(
                    f"No price data found for symbol {symbol}",
                    context={"symbol": symbol, "status": 404},
                )

            if response.status_code >= 400:
                logger.error(
                    "HTTP error fetching price history",
                    extra={"data": {"symbol": symbol, "status_code": response.status_code}},
                )
                raise DataFetchError(
                    f"HTTP {response.status_code} fetching {symbol}",
                    context={"symbol": symbol, "status": response.status_code},
                )

            try:
                return response.json()
            except ValueError as exc:
                raise DataParseError(
                    f"Invalid JSON in price response for {symbol}",
                    context={"symbol": symbol},
                ) from exc


def _epoch_seconds(day: date) -> int:
    """Midnight UTC of ``day`` as unix seconds."""
    return int(datetime.combine(day, time.min, tzinfo=UTC).timestamp())
