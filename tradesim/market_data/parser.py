"""Parser for Yahoo Finance v8 chart payloads.

The chart endpoint returns one result per symbol holding a timestamp
array plus time-aligned OHLCV arrays under ``indicators.quote[0]`` and an
optional ``indicators.adjclose[0].adjclose`` array:

    {"chart": {"result": [{"meta": {"gmtoffset": -14400, ...},
                           "timestamp": [...],
                           "indicators": {"quote": [{"open": [...], ...}],
                                          "adjclose": [{"adjclose": [...]}]}}],
               "error": null}}

This module is PURE — no I/O.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from tradesim.common.exceptions import DataParseError
from tradesim.common.schemas import PricePoint

REQUIRED_QUOTE_FIELDS = ("open", "high", "low", "close", "volume")


def parse_chart_payload(symbol: str, payload: object) -> list[PricePoint]:
    """Convert a chart payload into a date-sorted, deduplicated bar series.

    Args:
        symbol: Ticker the payload was requested for (used in errors).
        payload: Decoded JSON body.

    Returns:
        Bars sorted by date. Empty when the provider has no data for the
        range (null/empty result, or a result without timestamps).

    Raises:
        DataParseError: If the payload does not have the chart structure.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("chart"), dict):
        raise DataParseError("Payload has no 'chart' object", context={"symbol": symbol})

    results = payload["chart"].get("result")
    if not results:
        return []
    if not isinstance(results, list) or not isinstance(results[0], dict):
        raise DataParseError("'chart.result' is not a list of objects", context={"symbol": symbol})

    result = results[0]
    timestamps = result.get("timestamp")
    if timestamps is None:
        # Yahoo omits the timestamp array when the range holds no sessions
        return []
    if not isinstance(timestamps, list):
        raise DataParseError("'timestamp' is not a list", context={"symbol": symbol})

    quote = _first_entry(result.get("indicators"), "quote")
    if quote is None:
        raise DataParseError("Missing 'indicators.quote'", context={"symbol": symbol})

    columns: dict[str, list] = {}
    for name in REQUIRED_QUOTE_FIELDS:
        column = quote.get(name)
        if not isinstance(column, list):
            raise DataParseError(
                f"Quote field '{name}' missing or not a list",
                context={"symbol": symbol, "field": name},
            )
        columns[name] = column

    adj_entry = _first_entry(result.get("indicators"), "adjclose")
    adj_closes = adj_entry.get("adjclose") if adj_entry else None
    if not isinstance(adj_closes, list):
        adj_closes = []

    offset = _gmt_offset(result.get("meta"))

    by_date: dict[date, PricePoint] = {}
    for i, ts in enumerate(timestamps):
        row = _row_at(columns, i)
        if ts is None or row is None:
            continue
        try:
            bar_date = _to_date(ts, offset)
            adj = adj_closes[i] if i < len(adj_closes) and adj_closes[i] is not None else None
            point = PricePoint(
                date=bar_date,
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                adj_close=float(adj) if adj is not None else float(row["close"]),
                volume=int(row["volume"]),
            )
        except (TypeError, ValueError, OverflowError) as exc:
            raise DataParseError(
                f"Malformed bar at index {i}: {exc}",
                context={"symbol": symbol, "index": i},
            ) from exc
        # Later rows win: a trailing duplicate is the provider's fresher bar
        by_date[bar_date] = point

    return sorted(by_date.values(), key=lambda p: p.date)


def _first_entry(indicators: object, key: str) -> dict | None:
    """Return ``indicators[key][0]`` if it is a dict, else None."""
    if not isinstance(indicators, dict):
        return None
    entries = indicators.get(key)
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        return None
    return entries[0]


def _row_at(columns: dict[str, list], i: int) -> dict | None:
    """Return the required fields at index i, or None if any is missing."""
    row = {}
    for name, column in columns.items():
        if i >= len(column) or column[i] is None:
            return None
        row[name] = column[i]
    return row


def _gmt_offset(meta: object) -> int:
    if isinstance(meta, dict) and isinstance(meta.get("gmtoffset"), int):
        return meta["gmtoffset"]
    return 0


def _to_date(timestamp: int | float, gmt_offset: int) -> date:
    """Convert a unix timestamp to the exchange-local trading date."""
    moment = datetime.fromtimestamp(timestamp, tz=UTC) + timedelta(seconds=gmt_offset)
    return moment.date()
