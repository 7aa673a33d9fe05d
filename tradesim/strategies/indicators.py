"""Technical indicators over a list of closing prices.

Each indicator returns one IndicatorValue per input price. Bars inside
the warm-up period are NOT_READY rather than None, so callers can tell
"no value yet" apart from a value that simply did not trigger anything.

This module is PURE — no I/O, no logging.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NotReady:
    """Indicator has not accumulated enough bars yet."""


@dataclass(frozen=True)
class Ready:
    """Indicator value available for this bar."""

    value: float


IndicatorValue = NotReady | Ready

NOT_READY = NotReady()


def simple_moving_average(prices: list[float], window: int) -> list[IndicatorValue]:
    """Mean of the trailing ``window`` prices, maintained with a running sum.

    The first ``window - 1`` bars are NOT_READY. A series shorter than the
    window is NOT_READY throughout.
    """
    if window <= 0 or len(prices) < window:
        return [NOT_READY] * len(prices)

    sma: list[IndicatorValue] = [NOT_READY] * (window - 1)
    running = sum(prices[:window])
    sma.append(Ready(running / window))
    for i in range(window, len(prices)):
        running += prices[i] - prices[i - window]
        sma.append(Ready(running / window))
    return sma


def relative_strength_index(prices: list[float], window: int) -> list[IndicatorValue]:
    """RSI with plain rolling means of gains and losses.

    The first value sits at index ``window`` and averages the price changes
    of bars 1..window. Every later bar i averages the ``window`` changes
    before it (bars i-window..i-1), so the series lags one bar and
    ``rsi[window + 1]`` always equals ``rsi[window]``. There is no Wilder
    smoothing. Bars before ``window`` are NOT_READY, as is a series of
    ``window`` prices or fewer.
    """
    if window <= 0 or len(prices) <= window:
        return [NOT_READY] * len(prices)

    gains = [0.0]
    losses = [0.0]
    for i in range(1, len(prices)):
        change = prices[i] - prices[i - 1]
        gains.append(max(0.0, change))
        losses.append(max(0.0, -change))

    rsi: list[IndicatorValue] = [NOT_READY] * window
    for i in range(window, len(prices)):
        start = max(1, i - window)
        avg_gain = sum(gains[start : start + window]) / window
        avg_loss = sum(losses[start : start + window]) / window
        rsi.append(Ready(_rsi_from_averages(avg_gain, avg_loss)))
    return rsi


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)
