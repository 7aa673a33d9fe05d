"""Shared fixtures for backtesting tests."""

from __future__ import annotations

import random

import pytest


@pytest.fixture
def random_walk() -> list[float]:
    """Deterministic 300-bar walk that trends, chops and draws down."""
    rng = random.Random(7)
    prices = [100.0]
    for _ in range(299):
        prices.append(max(1.0, prices[-1] * (1 + rng.gauss(0.0005, 0.02))))
    return prices
