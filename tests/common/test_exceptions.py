"""Tests for the tradesim exception hierarchy."""

from __future__ import annotations

import pytest

from tradesim.common.exceptions import (
    ConfigurationError,
    DataFetchError,
    DataParseError,
    DataUnavailableError,
    DeadlineExceededError,
    InternalConsistencyError,
    RateLimitExceededError,
    StrategyNotFoundError,
    TradesimError,
)


class TestErrorKinds:
    """Every exception names the category reported to callers."""

    @pytest.mark.parametrize(
        ("exc_type", "kind"),
        [
            (TradesimError, "InternalError"),
            (ConfigurationError, "ConfigurationError"),
            (StrategyNotFoundError, "ConfigurationError"),
            (DataUnavailableError, "DataUnavailableError"),
            (DataFetchError, "DataFetchError"),
            (RateLimitExceededError, "DataFetchError"),
            (DataParseError, "DataParseError"),
            (InternalConsistencyError, "InternalConsistencyError"),
            (DeadlineExceededError, "DeadlineExceeded"),
        ],
    )
    def test_error_kind(self, exc_type, kind):
        """error_kind is set per category; subclasses inherit their parent's."""
        assert exc_type("boom").error_kind == kind

    def test_all_derive_from_base(self):
        """Callers can catch TradesimError for every category."""
        for exc_type in (
            ConfigurationError,
            DataUnavailableError,
            DataFetchError,
            DataParseError,
            InternalConsistencyError,
            DeadlineExceededError,
        ):
            assert issubclass(exc_type, TradesimError)

    def test_rate_limit_is_fetch_error(self):
        """Exhausted retries are caught as a fetch failure."""
        with pytest.raises(DataFetchError):
            raise RateLimitExceededError("still throttled")


class TestContext:
    """Structured context attached to exceptions."""

    def test_message_and_context_stored(self):
        """Message and context are available as attributes."""
        exc = DataFetchError("HTTP 500", context={"symbol": "AAPL", "status": 500})
        assert exc.message == "HTTP 500"
        assert exc.context == {"symbol": "AAPL", "status": 500}

    def test_context_defaults_to_empty_dict(self):
        """No context means an empty dict, never None."""
        assert ConfigurationError("bad").context == {}

    def test_str_includes_context(self):
        """str() appends the context for logging."""
        exc = DataParseError("bad payload", context={"symbol": "MSFT"})
        assert "bad payload" in str(exc)
        assert "MSFT" in str(exc)

    def test_str_without_context_is_message(self):
        """str() is the bare message when there is no context."""
        assert str(DataUnavailableError("no data")) == "no data"

    def test_secret_context_redacted(self):
        """Secret-looking context keys are redacted in str()."""
        exc = DataFetchError("denied", context={"api_key": "sk-12345", "symbol": "AAPL"})
        assert "sk-12345" not in str(exc)
        assert "[REDACTED]" in str(exc)
        assert "AAPL" in str(exc)
