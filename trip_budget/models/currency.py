"""
Supported Currencies

DESIGN DECISION: The set of currency codes is fixed.
Anything outside it is treated as missing and replaced by the
document's display currency during migration.
"""

from typing import Any, Optional


DEFAULT_DISPLAY_CURRENCY = "USD"

# Rates in every table are expressed relative to this currency
PIVOT_CURRENCY = "USD"

SUPPORTED_CURRENCIES = frozenset({
    "ARS", "AUD", "BRL", "CAD", "CHF", "CLP", "CNY", "COP", "CZK", "DKK",
    "EUR", "GBP", "HKD", "HUF", "IDR", "ILS", "INR", "ISK", "JPY", "KRW",
    "MXN", "MYR", "NOK", "NZD", "PEN", "PHP", "PLN", "SEK", "SGD", "THB",
    "TRY", "TWD", "USD", "VND", "ZAR",
})


def normalize_currency(code: Any) -> Optional[str]:
    """
    Normalize a currency code to its canonical upper-case form.

    Returns None for non-strings and for codes outside SUPPORTED_CURRENCIES.
    """
    if not isinstance(code, str):
        return None
    normalized = code.strip().upper()
    return normalized if normalized in SUPPORTED_CURRENCIES else None
