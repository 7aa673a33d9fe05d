"""Pydantic schemas shared across modules.

These are the data shapes that flow between the market data client,
the strategies, the simulator and the metrics calculator.

RULES:
- Modules exchange these types, never ad-hoc dicts.
- Records that are never mutated after creation are frozen.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Signal(str, Enum):
    """Per-bar decision emitted by a strategy."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeAction(str, Enum):
    """Side of an executed trade."""

    BUY = "BUY"
    SELL = "SELL"


# ─── Market Data ───


class PricePoint(BaseModel):
    """One daily OHLCV bar. Immutable once fetched."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    open: float
    high: float
    low: float
    close: float
    adj_close: float
    volume: int = Field(ge=0)

    @property
    def price(self) -> float:
        """Price used for indicators and trade execution."""
        return self.close


# ─── Simulation Output ───


class ValueSample(BaseModel):
    """Portfolio (or benchmark) value on one bar."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    value: float


class Trade(BaseModel):
    """A single executed trade. BUY trades carry cost, SELL trades carry proceeds."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    action: TradeAction
    price: float = Field(gt=0)
    shares: int = Field(gt=0)
    cost: float | None = None
    proceeds: float | None = None
