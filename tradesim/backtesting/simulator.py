"""Portfolio simulator — replays signals bar by bar.

The portfolio is a two-state machine, FLAT (all cash) or LONG (whole
shares, fully invested). On every bar the value is sampled first, using
the close and the state before the bar's signal, then the signal is
applied at the close:

    FLAT + BUY   -> buy floor(cash / price) shares, go LONG
    LONG + SELL  -> sell every share, go FLAT
    anything else -> no-op

No commissions, slippage, partial fills or fractional shares.

Usage:
    from tradesim.backtesting.simulator import simulate

    result = simulate(series, signals, initial_capital=10_000)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from tradesim.common.exceptions import InternalConsistencyError
from tradesim.common.logging import get_logger
from tradesim.common.schemas import PricePoint, Signal, Trade, TradeAction, ValueSample

logger = get_logger("SIMULATOR")


class Position(str, Enum):
    FLAT = "FLAT"
    LONG = "LONG"


@dataclass
class PortfolioState:
    """Cash and whole shares held during a simulation.

    Attributes:
        cash: Uninvested cash, never negative.
        shares_held: Whole shares held, never negative.
    """

    cash: float
    shares_held: int = 0

    @property
    def position(self) -> Position:
        return Position.LONG if self.shares_held > 0 else Position.FLAT

    def value_at(self, price: float) -> float:
        return self.cash + self.shares_held * price


@dataclass
class SimulationResult:
    """Output of one simulator pass."""

    value_history: list[ValueSample] = field(default_factory=list)
    trades: list[Trade] = field(default_factory=list)
    final_state: PortfolioState | None = None

    @property
    def buy_count(self) -> int:
        return sum(1 for t in self.trades if t.action is TradeAction.BUY)


def simulate(
    series: list[PricePoint],
    signals: list[Signal],
    initial_capital: float,
) -> SimulationResult:
    """Replay ``signals`` over ``series`` starting FLAT with ``initial_capital``.

    Args:
        series: Bars in ascending date order.
        signals: One signal per bar.
        initial_capital: Starting cash.

    Returns:
        SimulationResult with one ValueSample per bar and the trade log.

    Raises:
        InternalConsistencyError: If signals and bars differ in length.
    """
    if len(signals) != len(series):
        raise InternalConsistencyError(
            "Signal count does not match bar count",
            context={"signals": len(signals), "bars": len(series)},
        )

    state = PortfolioState(cash=initial_capital)
    result = SimulationResult(final_state=state)

    for bar, signal in zip(series, signals, strict=True):
        price = bar.price
        result.value_history.append(ValueSample(date=bar.date, value=state.value_at(price)))

        trade = _apply_signal(state, signal, bar)
        if trade is not None:
            result.trades.append(trade)
            logger.debug(
                f"{trade.action.value} {trade.shares} @ {trade.price:.2f}",
                extra={
                    "data": {
                        "date": str(trade.date),
                        "cash": round(state.cash, 2),
                        "shares_held": state.shares_held,
                    }
                },
            )

    logger.debug(
        "Simulation finished",
        extra={
            "data": {
                "bars": len(series),
                "trades": len(result.trades),
                "final_cash": round(state.cash, 2),
                "final_shares": state.shares_held,
            }
        },
    )
    return result


def _apply_signal(state: PortfolioState, signal: Signal, bar: PricePoint) -> Trade | None:
    """Apply one signal to the state in place; return the trade if one happened."""
    price = bar.price

    if signal is Signal.BUY and state.position is Position.FLAT:
        if state.cash <= 0 or price <= 0:
            return None
        shares = math.floor(state.cash / price)
        if shares * price > state.cash:
            # float division rounded up to the next whole share
            shares -= 1
        if shares <= 0:
            return None
        cost = shares * price
        state.cash -= cost
        state.shares_held = shares
        return Trade(date=bar.date, action=TradeAction.BUY, price=price, shares=shares, cost=cost)

    if signal is Signal.SELL and state.position is Position.LONG:
        if price <= 0:
            return None
        shares = state.shares_held
        proceeds = shares * price
        state.cash += proceeds
        state.shares_held = 0
        return Trade(
            date=bar.date, action=TradeAction.SELL, price=price, shares=shares, proceeds=proceeds
        )

    return None


def replay_trade_log(
    series: list[PricePoint],
    trades: list[Trade],
    initial_capital: float,
) -> list[ValueSample]:
    """Rebuild the value history from a trade log alone.

    Trades are applied at the close of their bar, after that bar's value
    is sampled, exactly as simulate() does. Used to audit a finished run.

    Raises:
        InternalConsistencyError: If a trade's date is not in the series or
            trades are out of order.
    """
    by_date: dict = {}
    last_date = None
    for trade in trades:
        if last_date is not None and trade.date <= last_date:
            raise InternalConsistencyError(
                "Trade log is not in chronological order",
                context={"date": str(trade.date)},
            )
        by_date[trade.date] = trade
        last_date = trade.date

    bar_dates = {bar.date for bar in series}
    missing = [str(d) for d in by_date if d not in bar_dates]
    if missing:
        raise InternalConsistencyError(
            "Trade log references dates missing from the series",
            context={"dates": missing},
        )

    state = PortfolioState(cash=initial_capital)
    history: list[ValueSample] = []
    for bar in series:
        history.append(ValueSample(date=bar.date, value=state.value_at(bar.price)))
        trade = by_date.get(bar.date)
        if trade is None:
            continue
        if trade.action is TradeAction.BUY:
            state.cash -= trade.shares * trade.price
            state.shares_held += trade.shares
        else:
            state.cash += trade.shares * trade.price
            state.shares_held -= trade.shares
    return history
