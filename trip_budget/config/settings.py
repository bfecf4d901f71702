"""
Configuration Management for Trip Budget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself takes the display currency and rate table as explicit
arguments; settings only supply defaults to the flows around it.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trip_budget.models.currency import DEFAULT_DISPLAY_CURRENCY, normalize_currency


class EngineSettings(BaseSettings):
    """Cost-allocation engine defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_BUDGET_",
        extra="ignore"
    )

    default_display_currency: str = Field(
        default=DEFAULT_DISPLAY_CURRENCY,
        description="Display currency used when a document has none"
    )

    @field_validator('default_display_currency')
    @classmethod
    def validate_default_display_currency(cls, v: str) -> str:
        """Only supported currency codes can be the default."""
        normalized = normalize_currency(v)
        if normalized is None:
            raise ValueError(f"Unsupported display currency: {v}")
        return normalized


class ExchangeRateSettings(BaseSettings):
    """Exchange rate provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_RATES_",
        extra="ignore"
    )

    api_url: str = Field(
        default="https://open.exchangerate-api.com/v6/latest",
        description="Endpoint returning USD-based rates as {'rates': {...}}"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="HTTP timeout for a single rate fetch"
    )
    use_fallback_rates: bool = Field(
        default=True,
        description="Serve the built-in rate table when the provider fails"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def exchange_rates(self) -> ExchangeRateSettings:
        return ExchangeRateSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name_error: message} for groups that fail to load.
    """
    results = {}

    settings = get_settings()

    for name in ("engine", "exchange_rates", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
