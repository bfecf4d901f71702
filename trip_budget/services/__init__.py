"""Services package."""

from trip_budget.services.rates import (
    FALLBACK_RATES,
    ExchangeRateError,
    ExchangeRateService,
    InvalidRatePayloadError,
    RateFetchError,
    RateSnapshot,
)

__all__ = [
    # Exchange rate services
    "FALLBACK_RATES",
    "ExchangeRateError",
    "ExchangeRateService",
    "InvalidRatePayloadError",
    "RateFetchError",
    "RateSnapshot",
]
