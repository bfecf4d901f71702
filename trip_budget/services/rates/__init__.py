"""Exchange rate services package."""

from trip_budget.services.rates.exchange_rate_service import (
    FALLBACK_RATES,
    ExchangeRateError,
    ExchangeRateService,
    InvalidRatePayloadError,
    RateFetchError,
    RateSnapshot,
    parse_rate_payload,
)

__all__ = [
    "FALLBACK_RATES",
    "ExchangeRateError",
    "ExchangeRateService",
    "InvalidRatePayloadError",
    "RateFetchError",
    "RateSnapshot",
    "parse_rate_payload",
]
