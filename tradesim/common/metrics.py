"""Prometheus metrics definitions for tradesim.

All metric objects are centralized here as module-level singletons.
Import what you need from anywhere in the codebase:

    from tradesim.common.metrics import PRICE_FETCHES_TOTAL, BACKTEST_RUNS_TOTAL

Exposing them is left to the embedding application (for example via
prometheus_client.make_asgi_app() or start_http_server()).
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Info

# ─── App Info ───

APP_INFO = Info("tradesim", "Application metadata")

# ─── Market Data ───

PRICE_FETCHES_TOTAL = Counter(
    "price_fetches_total",
    "Historical price fetch outcomes",
    labelnames=["outcome"],
)

PRICE_FETCH_RETRIES_TOTAL = Counter(
    "price_fetch_retries_total",
    "Retries caused by provider rate-limit responses",
)

THROTTLE_WAIT_SECONDS = Histogram(
    "throttle_wait_seconds",
    "Time spent waiting at the provider throttle gate",
    buckets=(0.0, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

# ─── Backtest Runs ───

BACKTEST_RUNS_TOTAL = Counter(
    "backtest_runs_total",
    "Backtest run outcomes",
    labelnames=["strategy", "outcome"],
)

BACKTEST_DURATION_SECONDS = Histogram(
    "backtest_duration_seconds",
    "End-to-end backtest run duration in seconds",
    labelnames=["strategy"],
    buckets=(0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


def set_app_info(version: str, environment: str) -> None:
    """Set the app info metric values. Refreshed at the start of every backtest run."""
    APP_INFO.info({"version": version, "environment": environment})
