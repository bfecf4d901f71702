"""Tests for the exchange rate service, against a mocked provider."""

import httpx
import pytest

from trip_budget.config import ExchangeRateSettings
from trip_budget.services.rates import (
    FALLBACK_RATES,
    ExchangeRateService,
    InvalidRatePayloadError,
    RateFetchError,
    parse_rate_payload,
)


API_URL = "https://rates.test/latest"


def make_service(handler, use_fallback_rates=True):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    settings = ExchangeRateSettings(api_url=API_URL, use_fallback_rates=use_fallback_rates)
    return ExchangeRateService(client=client, settings=settings)


class TestParseRatePayload:
    """Sanitizing provider payloads."""

    def test_keeps_usable_rates(self):
        rates = parse_rate_payload({
            "rates": {
                "USD": 1,
                "eur": 0.9,
                "JPY": 150,
                "BAD": -2,
                "NAN": float("nan"),
                "STR": "1.1",
                "BOOL": True,
                "ZERO": 0,
            }
        })
        assert rates == {"USD": 1.0, "EUR": 0.9, "JPY": 150.0}

    def test_usd_is_pinned_to_one(self):
        rates = parse_rate_payload({"rates": {"USD": 1.02, "EUR": 0.9}})
        assert rates["USD"] == 1.0

    @pytest.mark.parametrize("payload", [
        None,
        [],
        {"result": "success"},
        {"rates": [1, 2]},
        {"rates": {"USD": 1}},
        {"rates": {"EUR": "0.9"}},
    ])
    def test_rejects_unusable_payloads(self, payload):
        with pytest.raises(InvalidRatePayloadError):
            parse_rate_payload(payload)


class TestExchangeRateService:
    """Fetching with and without fallback."""

    def test_fetch_rates(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 0.8}})

        with make_service(handler) as service:
            snapshot = service.fetch_rates()

        assert seen == [API_URL]
        assert snapshot.rates == {"USD": 1.0, "EUR": 0.8}
        assert snapshot.base == "USD"
        assert not snapshot.is_fallback
        assert snapshot.currencies == ["EUR", "USD"]

    def test_server_error_uses_fallback(self):
        service = make_service(lambda request: httpx.Response(503))
        snapshot = service.fetch_rates()

        assert snapshot.is_fallback
        assert snapshot.rates == FALLBACK_RATES
        assert "503" in snapshot.fallback_reason

    def test_non_json_body_uses_fallback(self):
        service = make_service(lambda request: httpx.Response(200, text="<html>"))
        assert service.fetch_rates().is_fallback

    def test_network_error_uses_fallback(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert make_service(handler).fetch_rates().is_fallback

    def test_fallback_disabled_raises(self):
        service = make_service(lambda request: httpx.Response(500), use_fallback_rates=False)

        with pytest.raises(RateFetchError):
            service.fetch_rates()

    def test_invalid_payload_raises_without_fallback(self):
        service = make_service(
            lambda request: httpx.Response(200, json={"rates": {}}),
            use_fallback_rates=False,
        )

        with pytest.raises(InvalidRatePayloadError):
            service.fetch_rates()

    def test_fallback_table_is_a_copy(self):
        snapshot = ExchangeRateService.fallback_snapshot("offline")
        snapshot.rates["EUR"] = 99.0

        assert FALLBACK_RATES["EUR"] == 0.92
        assert snapshot.fallback_reason == "offline"

    def test_close_leaves_injected_client_open(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        service = ExchangeRateService(client=client, settings=ExchangeRateSettings())
        service.close()

        assert not client.is_closed


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
