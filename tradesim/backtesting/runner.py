"""Backtest runner — the single public entry point of the core.

Fetches history, generates signals, simulates the portfolio, computes
metrics and a buy-and-hold benchmark, and returns one BacktestResult.
Errors never cross this boundary: every failure becomes a result with
``error`` set and no partial data. Task cancellation is the exception and
propagates unchanged.

Usage:
    from tradesim.backtesting.runner import run_backtest

    result = await run_backtest(
        "AAPL", date(2020, 1, 1), date(2024, 12, 31),
        "sma_crossover", 10_000, {"shortWindow": 50, "longWindow": 200},
    )
    if not result.ok:
        print(result.error.error_kind, result.error.message)
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import date
from typing import Any

from pydantic import ValidationError

from tradesim import __version__
from tradesim.backtesting.metrics import compute_metrics
from tradesim.backtesting.schemas import BacktestErrorInfo, BacktestRequest, BacktestResult
from tradesim.backtesting.simulator import simulate
from tradesim.common.config import get_settings
from tradesim.common.exceptions import (
    ConfigurationError,
    DataUnavailableError,
    DeadlineExceededError,
    InternalConsistencyError,
    TradesimError,
)
from tradesim.common.logging import get_logger, run_id_var
from tradesim.common.metrics import (
    BACKTEST_DURATION_SECONDS,
    BACKTEST_RUNS_TOTAL,
    set_app_info,
)
from tradesim.common.schemas import PricePoint, ValueSample
from tradesim.market_data.client import HistoricalDataClient
from tradesim.strategies.registry import STRATEGIES, lookup

logger = get_logger("BACKTEST")


async def run_backtest(
    symbol: str,
    start_date: date,
    end_date: date,
    strategy_name: str,
    initial_capital: float,
    parameters: dict[str, Any] | None = None,
    *,
    client: HistoricalDataClient | None = None,
    timeout_seconds: float | None = None,
) -> BacktestResult:
    """Run one backtest end to end.

    Args:
        symbol: Ticker symbol to backtest.
        start_date: First date of the range (inclusive).
        end_date: Last date of the range (inclusive).
        strategy_name: Registered strategy name ("sma_crossover", "rsi_basic").
        initial_capital: Starting cash, must be positive.
        parameters: Raw strategy parameters; missing keys take defaults.
        client: Data client to use. When omitted, one is created from
            settings and closed after the fetch.
        timeout_seconds: Deadline for the whole run. Defaults to
            settings.backtest_timeout_seconds (None = no deadline).

    Returns:
        BacktestResult with metrics and histories, or with ``error`` set.
    """
    token = run_id_var.set(uuid.uuid4().hex)
    started = time.monotonic()
    settings = get_settings()
    set_app_info(__version__, settings.environment)
    deadline = (
        timeout_seconds if timeout_seconds is not None else settings.backtest_timeout_seconds
    )
    metric_label = (
        strategy_name if isinstance(strategy_name, str) and strategy_name in STRATEGIES else "unknown"
    )

    try:
        logger.info(
            "Starting backtest",
            extra={
                "data": {
                    "symbol": symbol,
                    "strategy": strategy_name,
                    "start_date": str(start_date),
                    "end_date": str(end_date),
                    "initial_capital": initial_capital,
                }
            },
        )

        try:
            request = _validate_request(
                symbol, start_date, end_date, strategy_name, initial_capital, parameters
            )
        except ConfigurationError as exc:
            result = _failed_unvalidated(symbol, start_date, end_date, strategy_name, exc)
        else:
            scope = asyncio.timeout(deadline)
            try:
                async with scope:
                    result = await _execute(request, client)
            except TimeoutError as exc:
                # Only our own deadline is DeadlineExceeded; a TimeoutError from
                # below is an ordinary unexpected failure.
                if scope.expired():
                    result = _failed(
                        request,
                        DeadlineExceededError(
                            f"Backtest did not finish within {deadline} seconds",
                            context={"timeout_seconds": deadline},
                        ),
                    )
                else:
                    result = _unexpected(request, exc)
            except TradesimError as exc:
                result = _failed(request, exc)
            except Exception as exc:
                result = _unexpected(request, exc)

        result.duration_seconds = round(time.monotonic() - started, 4)
        outcome = result.error.error_kind if result.error else "success"
        BACKTEST_RUNS_TOTAL.labels(strategy=metric_label, outcome=outcome).inc()
        BACKTEST_DURATION_SECONDS.labels(strategy=metric_label).observe(result.duration_seconds)

        logger.info(
            "Backtest finished",
            extra={
                "data": {
                    "symbol": symbol,
                    "strategy": strategy_name,
                    "outcome": outcome,
                    "duration_seconds": result.duration_seconds,
                }
            },
        )
        return result
    finally:
        run_id_var.reset(token)


async def _execute(request: BacktestRequest, client: HistoricalDataClient | None) -> BacktestResult:
    """The pipeline itself. Raises TradesimError subclasses on failure."""
    strategy = lookup(request.strategy_name)
    params = strategy.parse_params(request.parameters)

    series = await _fetch_history(request, client)
    if not series:
        raise DataUnavailableError(
            "No historical data available for the requested period",
            context={
                "symbol": request.symbol,
                "start_date": str(request.start_date),
                "end_date": str(request.end_date),
            },
        )

    signals = strategy.generate(series, params)
    if len(signals) != len(series):
        raise InternalConsistencyError(
            "Signal generation produced a different number of signals than bars",
            context={
                "strategy": request.strategy_name,
                "signals": len(signals),
                "bars": len(series),
            },
        )

    simulation = simulate(series, signals, request.initial_capital)
    metrics = compute_metrics(
        [sample.value for sample in simulation.value_history],
        request.initial_capital,
        (request.end_date - request.start_date).days,
        simulation.buy_count,
    )

    logger.info(
        "Performance metrics calculated",
        extra={
            "data": {
                "final_value": round(metrics.final_value, 2),
                "total_return_pct": round(metrics.total_return_pct, 2),
                "trades": len(simulation.trades),
            }
        },
    )

    return BacktestResult(
        symbol=request.symbol,
        start_date=request.start_date,
        end_date=request.end_date,
        strategy_name=request.strategy_name,
        metrics=metrics,
        value_history=simulation.value_history,
        benchmark_history=build_benchmark(series, request.initial_capital),
        trade_log=simulation.trades,
    )


async def _fetch_history(
    request: BacktestRequest,
    client: HistoricalDataClient | None,
) -> list[PricePoint]:
    if client is not None:
        return await client.fetch(request.symbol, request.start_date, request.end_date)
    async with HistoricalDataClient() as owned:
        return await owned.fetch(request.symbol, request.start_date, request.end_date)


def build_benchmark(series: list[PricePoint], initial_capital: float) -> list[ValueSample]:
    """Buy-and-hold benchmark: closes scaled so the first bar equals initial_capital."""
    if not series:
        return []
    first = series[0].price
    return [
        ValueSample(
            date=bar.date,
            value=bar.price / first * initial_capital if first > 0 else initial_capital,
        )
        for bar in series
    ]


def _validate_request(
    symbol: str,
    start_date: date,
    end_date: date,
    strategy_name: str,
    initial_capital: float,
    parameters: dict[str, Any] | None,
) -> BacktestRequest:
    try:
        return BacktestRequest(
            symbol=symbol,
            start_date=start_date,
            end_date=end_date,
            strategy_name=strategy_name,
            initial_capital=initial_capital,
            parameters=parameters,
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid backtest request: {problems}") from exc


def _error_info(exc: Exception) -> BacktestErrorInfo:
    if isinstance(exc, TradesimError):
        return BacktestErrorInfo(error_kind=exc.error_kind, message=exc.message)
    return BacktestErrorInfo(
        error_kind="InternalError",
        message=f"An unexpected internal error occurred: {exc}",
    )


def _failed(request: BacktestRequest, exc: Exception) -> BacktestResult:
    if isinstance(exc, TradesimError):
        logger.warning(
            f"Backtest failed: {exc.message}",
            extra={"data": {"error_kind": exc.error_kind, **exc.context}},
        )
    return BacktestResult(
        symbol=request.symbol,
        start_date=request.start_date,
        end_date=request.end_date,
        strategy_name=request.strategy_name,
        error=_error_info(exc),
    )


def _unexpected(request: BacktestRequest, exc: Exception) -> BacktestResult:
    logger.exception(
        "Unexpected error during backtest",
        extra={"data": {"symbol": request.symbol, "strategy": request.strategy_name}},
    )
    return _failed(request, exc)


def _failed_unvalidated(
    symbol: Any,
    start_date: Any,
    end_date: Any,
    strategy_name: Any,
    exc: ConfigurationError,
) -> BacktestResult:
    """Error result for a request that could not be validated.

    Built without validation because the request fields are what failed.
    """
    logger.warning(
        f"Backtest rejected: {exc.message}",
        extra={"data": {"error_kind": exc.error_kind}},
    )
    return BacktestResult.model_construct(
        symbol=symbol,
        start_date=start_date,
        end_date=end_date,
        strategy_name=strategy_name,
        metrics=None,
        value_history=[],
        benchmark_history=[],
        trade_log=[],
        error=_error_info(exc),
        duration_seconds=0.0,
    )
