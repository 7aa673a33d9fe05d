"""Async throttle gate for outbound market data requests.

Enforces a minimum spacing between any two requests to the price
provider, regardless of which backtest run issues them. The gate is a
plain value: the process shares one instance (see get_throttle_gate),
while tests construct their own.

Usage:
    from tradesim.market_data.rate_limiter import get_throttle_gate

    gate = get_throttle_gate()
    await gate.acquire()
    # ... make the API call ...
"""

from __future__ import annotations

import asyncio
import time
from functools import lru_cache

from tradesim.common.config import get_settings
from tradesim.common.metrics import THROTTLE_WAIT_SECONDS


class ThrottleGate:
    """Serializes callers and spaces out their requests.

    Callers queue on an asyncio.Lock. The holder checks the time since the
    last permitted call, sleeps off the remainder of the minimum interval,
    stamps the new "last permitted call" time and releases the lock before
    making its request.

    Args:
        min_interval_seconds: Minimum spacing between two permitted calls.
    """

    def __init__(self, min_interval_seconds: float = 2.0) -> None:
        if min_interval_seconds < 0:
            msg = f"min_interval_seconds must be >= 0, got {min_interval_seconds}"
            raise ValueError(msg)
        self.min_interval = min_interval_seconds
        self.last_call: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait until a request is allowed.

        Returns:
            Seconds this caller slept inside the gate (0.0 if none).
        """
        async with self._lock:
            waited = 0.0
            if self.last_call is not None:
                wait_time = self.min_interval - (time.monotonic() - self.last_call)
                if wait_time > 0:
                    await asyncio.sleep(wait_time)
                    waited = wait_time
            self.last_call = time.monotonic()

        THROTTLE_WAIT_SECONDS.observe(waited)
        return waited


@lru_cache
def get_throttle_gate() -> ThrottleGate:
    """Get the process-wide throttle gate built from settings."""
    return ThrottleGate(min_interval_seconds=get_settings().market_data_min_interval_seconds)
