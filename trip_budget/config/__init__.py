"""Configuration package."""

from trip_budget.config.settings import (
    AppSettings,
    EngineSettings,
    ExchangeRateSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EngineSettings",
    "ExchangeRateSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
