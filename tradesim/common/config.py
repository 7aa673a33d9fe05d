"""Application configuration via environment variables.

Uses pydantic-settings to load from .env file and environment variables.
All config is centralized here — modules should import `get_settings()`.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─── App ───
    environment: str = "development"

    # ─── Market Data Provider ───
    market_data_base_url: str = "https://query1.finance.yahoo.com"
    market_data_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
    )
    market_data_min_interval_seconds: float = 2.0
    market_data_max_retries: int = 3
    market_data_backoff_base_seconds: float = 3.0
    market_data_timeout_seconds: float = 30.0

    # ─── Backtest Runs ───
    backtest_timeout_seconds: float | None = None  # None = no deadline


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton.

    Uses lru_cache so Settings is only instantiated once.
    In tests, call `get_settings.cache_clear()` to reset.
    """
    return Settings()
