"""Custom exceptions for tradesim.

All modules should raise these exceptions instead of generic ones.
The backtest runner catches TradesimError and turns it into a structured
error result, so every exception carries an ``error_kind`` that names its
category for callers.
"""

from __future__ import annotations


class TradesimError(Exception):
    """Base exception for all tradesim errors.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured data for logging/debugging.
    """

    error_kind = "InternalError"

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            # Filter out anything that looks like a secret
            safe_context = {
                k: "[REDACTED]" if _is_secret_key(k) else v for k, v in self.context.items()
            }
            return f"{super().__str__()} | context={safe_context}"
        return super().__str__()


class ConfigurationError(TradesimError):
    """Invalid backtest request, unknown strategy, or bad strategy parameters."""

    error_kind = "ConfigurationError"


class StrategyNotFoundError(ConfigurationError):
    """No strategy is registered under the requested name."""


class DataUnavailableError(TradesimError):
    """The provider has no price data for the symbol and date range."""

    error_kind = "DataUnavailableError"


class DataFetchError(TradesimError):
    """Failed to fetch price data (network failure or HTTP error)."""

    error_kind = "DataFetchError"


class RateLimitExceededError(DataFetchError):
    """The provider kept rate-limiting after all retries were used."""


class DataParseError(TradesimError):
    """The provider response did not have the expected structure."""

    error_kind = "DataParseError"


class InternalConsistencyError(TradesimError):
    """An internal invariant was broken (e.g. signal count != bar count)."""

    error_kind = "InternalConsistencyError"


class DeadlineExceededError(TradesimError):
    """The backtest did not finish before its deadline."""

    error_kind = "DeadlineExceeded"


def _is_secret_key(key: str) -> bool:
    """Check if a dict key name suggests it contains secret data."""
    secret_words = {"key", "secret", "password", "token", "private", "credential"}
    key_lower = key.lower()
    return any(word in key_lower for word in secret_words)
