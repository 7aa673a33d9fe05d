"""Backtesting module — historical simulation of trading strategies.

Replays a strategy's signals over daily price history against a cash
balance and reports risk/return statistics.
"""

from __future__ import annotations
