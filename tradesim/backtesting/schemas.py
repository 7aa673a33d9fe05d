"""Pydantic schemas for backtest requests and results."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tradesim.common.schemas import Trade, ValueSample

# ─── Request ───


class BacktestRequest(BaseModel):
    """Inputs for one backtest run."""

    symbol: str
    start_date: date
    end_date: date
    strategy_name: str
    initial_capital: float = Field(gt=0)
    parameters: dict[str, Any] | None = None

    @field_validator("symbol", "strategy_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Strip whitespace and reject empty values."""
        v = v.strip()
        if not v:
            msg = "must not be empty"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_date_range(self) -> BacktestRequest:
        """Ensure end_date >= start_date."""
        if self.end_date < self.start_date:
            msg = f"end_date ({self.end_date}) must be >= start_date ({self.start_date})"
            raise ValueError(msg)
        return self


# ─── Metrics ───


class PerformanceMetrics(BaseModel):
    """Return/risk statistics for a finished run. Percentages are in percent units."""

    model_config = ConfigDict(frozen=True)

    initial_capital: float
    final_value: float
    total_return_pct: float = 0.0
    annualized_return_pct: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown_pct: float = 0.0  # <= 0, e.g. -12.5 for a 12.5% drawdown
    trade_pair_count: int = 0


# ─── Result ───


class BacktestErrorInfo(BaseModel):
    """Why a run produced no result."""

    error_kind: str
    message: str


class BacktestResult(BaseModel):
    """Complete result of a backtest run.

    On failure ``error`` is set and every data field is empty; the request
    fields are always filled so callers can report what was attempted.
    """

    symbol: str
    start_date: date
    end_date: date
    strategy_name: str
    metrics: PerformanceMetrics | None = None
    value_history: list[ValueSample] = []
    benchmark_history: list[ValueSample] = []
    trade_log: list[Trade] = []
    error: BacktestErrorInfo | None = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None
