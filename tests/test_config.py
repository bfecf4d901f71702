"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from trip_budget.config import (
    AppSettings,
    EngineSettings,
    ExchangeRateSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestEngineSettings:
    """Engine defaults."""

    def test_defaults(self, monkeypatch):
        """Test the default display currency."""
        monkeypatch.delenv("TRIP_BUDGET_DEFAULT_DISPLAY_CURRENCY", raising=False)
        assert EngineSettings().default_display_currency == "USD"

    def test_display_currency_from_env(self, monkeypatch):
        """Test that codes from the environment are normalized."""
        monkeypatch.setenv("TRIP_BUDGET_DEFAULT_DISPLAY_CURRENCY", "eur")
        assert EngineSettings().default_display_currency == "EUR"

    def test_unsupported_display_currency(self, monkeypatch):
        """Test that an unsupported default is a configuration error."""
        monkeypatch.setenv("TRIP_BUDGET_DEFAULT_DISPLAY_CURRENCY", "XYZ")
        with pytest.raises(ValidationError):
            EngineSettings()


class TestExchangeRateSettings:
    """Rate provider configuration."""

    def test_fallback_can_be_disabled(self, monkeypatch):
        """Test boolean parsing from the environment."""
        monkeypatch.setenv("EXCHANGE_RATES_USE_FALLBACK_RATES", "false")
        assert ExchangeRateSettings().use_fallback_rates is False

    def test_timeout_bounds(self):
        """Test that the timeout must be positive."""
        with pytest.raises(ValidationError):
            ExchangeRateSettings(timeout_seconds=0)


class TestAppSettings:
    """Application-level settings."""

    def test_defaults(self, monkeypatch):
        """Test environment defaults."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("APP_ENVIRONMENT", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.app_environment == "development"

    def test_log_level_is_constrained(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, log_level="LOUD")


class TestValidateAllSettings:
    """Startup configuration check."""

    def test_all_valid(self, monkeypatch):
        """Test that defaults pass."""
        monkeypatch.delenv("TRIP_BUDGET_DEFAULT_DISPLAY_CURRENCY", raising=False)
        results = validate_all_settings()
        assert results["engine"] is True
        assert results["exchange_rates"] is True

    def test_reports_invalid_group(self, monkeypatch):
        """Test that a broken group is reported, not raised."""
        monkeypatch.setenv("TRIP_BUDGET_DEFAULT_DISPLAY_CURRENCY", "XYZ")
        results = validate_all_settings()
        assert results["engine"] is False
        assert "engine_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
