"""Simple moving average crossover strategy.

Buys when the short SMA moves above the long SMA and sells when it moves
below. The first bar on which both averages exist counts as a crossover
if the averages already diverge there, so a trend that is established
during warm-up still produces its entry signal.
"""

from __future__ import annotations

from pydantic import Field, model_validator

from tradesim.common.schemas import Signal
from tradesim.strategies.base import SignalGenerator, StrategyParams
from tradesim.strategies.indicators import IndicatorValue, Ready, simple_moving_average


class SmaCrossoverParams(StrategyParams):
    """Window sizes for the two moving averages."""

    short_window: int = Field(
        default=50,
        gt=0,
        alias="shortWindow",
        description="Window size for the short SMA.",
    )
    long_window: int = Field(
        default=200,
        gt=0,
        alias="longWindow",
        description="Window size for the long SMA.",
    )

    @model_validator(mode="after")
    def validate_window_order(self) -> SmaCrossoverParams:
        """Ensure short_window < long_window."""
        if self.short_window >= self.long_window:
            msg = (
                f"shortWindow ({self.short_window}) must be smaller than "
                f"longWindow ({self.long_window})"
            )
            raise ValueError(msg)
        return self


class SmaCrossoverStrategy(SignalGenerator):
    """Short/long SMA crossover."""

    name = "sma_crossover"
    display_name = "Simple Moving Average (SMA) Crossover"
    description = (
        "Buys when a short-term SMA crosses above a long-term SMA. "
        "Sells when it crosses below."
    )
    params_model = SmaCrossoverParams

    def _generate(self, closes: list[float], params: SmaCrossoverParams) -> list[Signal]:
        if len(closes) < params.long_window:
            return [Signal.HOLD] * len(closes)

        short_sma = simple_moving_average(closes, params.short_window)
        long_sma = simple_moving_average(closes, params.long_window)

        signals: list[Signal] = []
        previous: int | None = None
        for short_value, long_value in zip(short_sma, long_sma, strict=True):
            current = _relation(short_value, long_value)
            signals.append(_crossover_signal(previous, current))
            previous = current
        return signals


def _relation(short_value: IndicatorValue, long_value: IndicatorValue) -> int | None:
    """+1 if short > long, -1 if short < long, 0 if equal, None if not ready."""
    if not isinstance(short_value, Ready) or not isinstance(long_value, Ready):
        return None
    if short_value.value > long_value.value:
        return 1
    if short_value.value < long_value.value:
        return -1
    return 0


def _crossover_signal(previous: int | None, current: int | None) -> Signal:
    if current is None:
        return Signal.HOLD
    if current == 1 and (previous is None or previous <= 0):
        return Signal.BUY
    if current == -1 and (previous is None or previous >= 0):
        return Signal.SELL
    return Signal.HOLD
