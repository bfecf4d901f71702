"""
Exchange Rate Service

Fetches the USD-based rate table the engine converts with.

DESIGN DECISION: A stale rate beats no budget.
When the provider is unreachable or returns garbage, the service serves a
small built-in table (flagged is_fallback) instead of failing the whole
calculation. Set EXCHANGE_RATES_USE_FALLBACK_RATES=false to fail loudly.

This service handles:
1. One GET to the provider (no retries, no caching)
2. Sanitizing the payload: only positive finite rates survive
3. Pinning the pivot currency (USD) to exactly 1.0

CRITICAL: Currencies absent from the table are NOT given a default rate.
The engine reports them as missing.
"""

import math
from datetime import datetime
from typing import Any, Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from trip_budget.config import ExchangeRateSettings, get_settings
from trip_budget.models.currency import PIVOT_CURRENCY


logger = structlog.get_logger(__name__)

FALLBACK_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "BRL": 5.0,
}


class ExchangeRateError(Exception):
    """Base exception for exchange rate errors."""
    pass


class RateFetchError(ExchangeRateError):
    """The provider could not be reached or answered with an error status."""
    pass


class InvalidRatePayloadError(ExchangeRateError):
    """The provider answered, but not with a usable rate table."""
    pass


class RateSnapshot(BaseModel):
    """A rate table as of one fetch: units of each currency per 1 USD."""

    base: str = PIVOT_CURRENCY
    rates: dict[str, float] = Field(
        ...,
        description="Currency code -> units per 1 USD"
    )
    fetched_at: datetime = Field(default_factory=datetime.utcnow)
    is_fallback: bool = Field(
        default=False,
        description="True when the built-in table replaced a failed fetch"
    )
    fallback_reason: Optional[str] = None

    @property
    def currencies(self) -> list[str]:
        return sorted(self.rates)


def _is_usable_rate(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def parse_rate_payload(payload: Any) -> dict[str, float]:
    """
    Extract the rate table from a provider response ({"rates": {...}}).

    Unusable entries are dropped; USD is always present at 1.0.

    Raises:
        InvalidRatePayloadError: If there is no rates object, or no usable
            rate besides USD
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
        raise InvalidRatePayloadError("Response has no 'rates' object")

    rates = {
        code.strip().upper(): float(value)
        for code, value in payload["rates"].items()
        if isinstance(code, str) and code.strip() and _is_usable_rate(value)
    }
    rates[PIVOT_CURRENCY] = 1.0

    if len(rates) == 1:
        raise InvalidRatePayloadError("Response contains no usable exchange rates")
    return rates


class ExchangeRateService:
    """
    Client for the exchange rate provider.

    IMPORTANT BOUNDARIES:
    1. This service ONLY fetches rates - it never converts amounts
    2. One attempt per call; retries are the caller's decision
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        settings: Optional[ExchangeRateSettings] = None,
    ):
        """
        Initialize the service.

        Args:
            client: HTTP client to use. If None, one is created on first use
                    and closed by close().
            settings: Provider settings. Defaults to the environment.
        """
        self._settings = settings or get_settings().exchange_rates
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self._settings.timeout_seconds)
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ExchangeRateService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def fallback_snapshot(reason: Optional[str] = None) -> RateSnapshot:
        """The built-in rate table."""
        return RateSnapshot(
            rates=dict(FALLBACK_RATES),
            is_fallback=True,
            fallback_reason=reason,
        )

    def _request_rates(self) -> dict[str, float]:
        try:
            response = self._get_client().get(self._settings.api_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RateFetchError(f"Failed to fetch exchange rates: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidRatePayloadError(f"Response is not JSON: {e}") from e

        return parse_rate_payload(payload)

    def fetch_rates(self) -> RateSnapshot:
        """
        Fetch the current rate table.

        Returns:
            RateSnapshot, flagged is_fallback when the built-in table was used

        Raises:
            ExchangeRateError: If the fetch failed and fallback is disabled
        """
        try:
            rates = self._request_rates()
        except ExchangeRateError as e:
            logger.warning(
                "exchange_rates_fetch_failed",
                url=self._settings.api_url,
                error=str(e),
                use_fallback=self._settings.use_fallback_rates,
            )
            if not self._settings.use_fallback_rates:
                raise
            return self.fallback_snapshot(str(e))

        logger.info("exchange_rates_fetched", currency_count=len(rates))
        return RateSnapshot(rates=rates)
