"""RSI threshold strategy.

Buys when RSI climbs back above the oversold level and sells when it
drops back below the overbought level. RSI uses plain rolling means of
gains and losses (see indicators.relative_strength_index).
"""

from __future__ import annotations

from pydantic import Field, model_validator

from tradesim.common.schemas import Signal
from tradesim.strategies.base import SignalGenerator, StrategyParams
from tradesim.strategies.indicators import Ready, relative_strength_index


class RsiThresholdParams(StrategyParams):
    """RSI window and the two trigger levels."""

    rsi_window: int = Field(
        default=14,
        gt=1,
        alias="rsiWindow",
        description="Window size for RSI calculation.",
    )
    oversold_threshold: float = Field(
        default=30.0,
        ge=0.0,
        le=100.0,
        alias="oversoldThreshold",
        description="RSI level below which is considered oversold.",
    )
    overbought_threshold: float = Field(
        default=70.0,
        ge=0.0,
        le=100.0,
        alias="overboughtThreshold",
        description="RSI level above which is considered overbought.",
    )

    @model_validator(mode="after")
    def validate_threshold_order(self) -> RsiThresholdParams:
        """Ensure oversold_threshold < overbought_threshold."""
        if self.oversold_threshold >= self.overbought_threshold:
            msg = (
                f"oversoldThreshold ({self.oversold_threshold}) must be less than "
                f"overboughtThreshold ({self.overbought_threshold})"
            )
            raise ValueError(msg)
        return self


class RsiThresholdStrategy(SignalGenerator):
    """RSI oversold/overbought threshold crossings."""

    name = "rsi_basic"
    display_name = "Relative Strength Index (RSI) Basic"
    description = (
        "Buys when RSI crosses above the oversold threshold. "
        "Sells when RSI crosses below the overbought threshold."
    )
    params_model = RsiThresholdParams

    def _generate(self, closes: list[float], params: RsiThresholdParams) -> list[Signal]:
        if len(closes) <= params.rsi_window:
            return [Signal.HOLD] * len(closes)

        rsi = relative_strength_index(closes, params.rsi_window)

        signals = [Signal.HOLD]
        for prev, curr in zip(rsi, rsi[1:]):
            if not isinstance(prev, Ready) or not isinstance(curr, Ready):
                signals.append(Signal.HOLD)
            elif prev.value <= params.oversold_threshold < curr.value:
                signals.append(Signal.BUY)
            elif prev.value >= params.overbought_threshold > curr.value:
                signals.append(Signal.SELL)
            else:
                signals.append(Signal.HOLD)
        return signals
