"""Root test configuration — shared fixtures for all test modules.

IMPORTANT: Environment variables are set BEFORE any tradesim imports
so that config.py loads test settings (no throttle spacing, short backoff).
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("MARKET_DATA_BASE_URL", "https://chart.example.test")
os.environ.setdefault("MARKET_DATA_MIN_INTERVAL_SECONDS", "0")
os.environ.setdefault("MARKET_DATA_BACKOFF_BASE_SECONDS", "0")

# Now safe to import tradesim modules
from datetime import date

import pytest

from tradesim.common.config import get_settings
from tradesim.common.schemas import PricePoint
from tradesim.market_data.rate_limiter import get_throttle_gate
from tests.factories import make_series

# ─── Clear cached settings so test env vars are used ───
get_settings.cache_clear()
get_throttle_gate.cache_clear()


@pytest.fixture
def rising_series() -> list[PricePoint]:
    """252 bars rising linearly from 100 to 200."""
    return make_series([100 + 100 * i / 251 for i in range(252)], start=date(2024, 1, 1))


@pytest.fixture
def flat_series() -> list[PricePoint]:
    """300 bars at a constant $100."""
    return make_series([100.0] * 300, start=date(2024, 1, 1))
