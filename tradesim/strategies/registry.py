"""Strategy registry — the closed set of available signal generators.

Usage:
    from tradesim.strategies.registry import list_all, lookup

    strategy = lookup("sma_crossover")
    signals = strategy.generate(series, {"shortWindow": 20, "longWindow": 50})
"""

from __future__ import annotations

from tradesim.common.exceptions import StrategyNotFoundError
from tradesim.strategies.base import SignalGenerator, StrategyInfo
from tradesim.strategies.rsi_threshold import RsiThresholdStrategy
from tradesim.strategies.sma_crossover import SmaCrossoverStrategy

STRATEGIES: dict[str, SignalGenerator] = {
    strategy.name: strategy for strategy in (SmaCrossoverStrategy(), RsiThresholdStrategy())
}


def lookup(name: str) -> SignalGenerator:
    """Return the strategy registered under ``name``.

    Raises:
        StrategyNotFoundError: If no strategy has that name.
    """
    strategy = STRATEGIES.get(name)
    if strategy is None:
        raise StrategyNotFoundError(
            f"Strategy with name '{name}' not found",
            context={"strategy": name, "available": sorted(STRATEGIES)},
        )
    return strategy


def list_all() -> list[StrategyInfo]:
    """Describe every registered strategy, ordered by display name."""
    infos = [strategy.describe() for strategy in STRATEGIES.values()]
    return sorted(infos, key=lambda info: info.display_name)
