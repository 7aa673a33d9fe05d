"""Metrics calculator for backtest results.

Computes aggregate statistics from a portfolio value history:
- Total return and annualized return (CAGR)
- Sharpe ratio (daily returns, zero risk-free rate)
- Maximum drawdown
- Trade pair count

Usage:
    from tradesim.backtesting.metrics import compute_metrics

    metrics = compute_metrics(values, initial_capital=10_000, total_days=365, buy_count=4)
"""

from __future__ import annotations

import math

from tradesim.backtesting.schemas import PerformanceMetrics

TRADING_DAYS_PER_YEAR = 252
DAYS_PER_YEAR = 365.25


def compute_metrics(
    values: list[float],
    initial_capital: float,
    total_days: float,
    buy_count: int,
) -> PerformanceMetrics:
    """Compute all performance metrics for a value history.

    Args:
        values: Portfolio value per bar, chronological.
        initial_capital: Starting cash.
        total_days: Calendar days covered by the backtest.
        buy_count: Executed BUY trades (each closes into at most one SELL).

    Returns:
        PerformanceMetrics. With an empty history or non-positive capital,
        only initial_capital and final_value (= initial_capital) are set.
    """
    if not values or initial_capital <= 0:
        return PerformanceMetrics(initial_capital=initial_capital, final_value=initial_capital)

    final_value = values[-1]
    daily_returns = _daily_returns(values)

    return PerformanceMetrics(
        initial_capital=initial_capital,
        final_value=final_value,
        total_return_pct=(final_value / initial_capital - 1.0) * 100.0,
        annualized_return_pct=_compute_annualized_return(final_value, initial_capital, total_days),
        sharpe_ratio=_compute_sharpe(daily_returns),
        max_drawdown_pct=_compute_max_drawdown(values, initial_capital),
        trade_pair_count=buy_count,
    )


def _compute_annualized_return(
    final_value: float,
    initial_capital: float,
    total_days: float,
) -> float:
    """Compound annual growth rate as a percentage.

    Periods shorter than one day are treated as one day.
    """
    years = max(1.0, total_days) / DAYS_PER_YEAR
    ratio = max(0.0, final_value) / initial_capital
    return (ratio ** (1.0 / years) - 1.0) * 100.0


def _daily_returns(values: list[float]) -> list[float]:
    """Bar-over-bar simple returns; 0.0 where the previous value is 0."""
    returns = []
    for prev, curr in zip(values, values[1:]):
        returns.append(curr / prev - 1.0 if prev != 0 else 0.0)
    return returns


def _compute_sharpe(daily_returns: list[float]) -> float:
    """Annualized Sharpe ratio from daily returns.

    Uses the population standard deviation and a zero risk-free rate,
    annualized with sqrt(252).

    Returns:
        Annualized Sharpe ratio (0.0 with no returns or zero volatility).
    """
    if not daily_returns:
        return 0.0

    mean_return = sum(daily_returns) / len(daily_returns)
    variance = sum((r - mean_return) ** 2 for r in daily_returns) / len(daily_returns)
    std_return = math.sqrt(variance)

    if std_return < 1e-12:
        return 0.0

    return (mean_return / std_return) * math.sqrt(TRADING_DAYS_PER_YEAR)


def _compute_max_drawdown(values: list[float], initial_capital: float) -> float:
    """Largest peak-to-trough decline as a non-positive percentage.

    The running peak starts at the initial capital.

    Returns:
        Max drawdown (e.g., -12.5 for a 12.5% decline; 0.0 if none).
    """
    peak = initial_capital
    max_dd = 0.0

    for value in values:
        peak = max(peak, value)
        if peak > 0:
            max_dd = min(max_dd, (value - peak) / peak)

    return max_dd * 100.0
