"""tradesim — historical strategy backtesting.

Fetches daily price history, turns it into buy/sell/hold signals, replays
the signals against a cash balance and reports risk/return statistics.
"""

from __future__ import annotations

__version__ = "0.1.0"
