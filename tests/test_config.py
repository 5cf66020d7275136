"""Tests for runtime settings."""

import pytest
from pydantic import ValidationError

from holdings_tracker.config import Settings


def test_defaults():
    """Test default values."""
    settings = Settings()

    assert settings.http_timeout == 10.0
    assert settings.price_ttl == 300.0
    assert settings.kdf_iterations == 100_000
    assert settings.clipboard_clear_delay == 30.0
    assert settings.idle_timeout == 300.0
    assert settings.max_history_days == 365


def test_from_env():
    """Test HOLDINGS_* overrides are parsed."""
    settings = Settings.from_env(
        {
            "HOLDINGS_EXPLORER_API_KEY": "abc",
            "HOLDINGS_PRICE_TTL": "60",
            "HOLDINGS_MAX_HISTORY_DAYS": "90",
            "HOLDINGS_COINGECKO_API_KEY": "",
            "UNRELATED": "x",
        }
    )

    assert settings.explorer_api_key == "abc"
    assert settings.price_ttl == 60.0
    assert settings.max_history_days == 90
    assert settings.coingecko_api_key is None


@pytest.mark.parametrize(("requested", "expected"), [(1, 4), (6, 6), (32, 8)])
def test_worker_count_clamped(requested, expected):
    """Test the worker pool size stays within 4..8."""
    assert Settings(max_workers=requested).max_workers == expected


def test_timeout_must_be_positive():
    """Test non-positive timeouts are rejected."""
    with pytest.raises(ValidationError):
        Settings(http_timeout=0)
