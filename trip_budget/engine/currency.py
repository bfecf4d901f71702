"""
Currency Conversion

Converts amounts between currency codes through a USD pivot table
({code: units of that currency per 1 USD}).

DESIGN DECISION: Approximation is a property of crossing currencies,
not of the numeric result. EUR -> GBP at a rate of exactly 1.0 is still
approximate; USD -> USD never is.

CRITICAL: A missing rate is a caller error. There is no zero or 1.0
fallback: a substituted rate would corrupt every total built on it.
"""

import math
from typing import Iterable, Mapping

from trip_budget.models.currency import PIVOT_CURRENCY

RateTable = Mapping[str, float]


class CurrencyConversionError(Exception):
    """Base error for currency conversion."""
    pass


class MissingRateError(CurrencyConversionError):
    """The rate table has no usable rate for one or more currencies in use."""

    def __init__(self, currencies: Iterable[str]):
        self.currencies = sorted(set(currencies))
        super().__init__(
            f"No exchange rate available for: {', '.join(self.currencies)}"
        )


def has_rate(code: str, rates: RateTable) -> bool:
    """True if code can be converted with this table (the pivot always can)."""
    if code == PIVOT_CURRENCY:
        return True
    rate = rates.get(code)
    return (
        isinstance(rate, (int, float))
        and not isinstance(rate, bool)
        and math.isfinite(rate)
        and rate > 0
    )


def _rate_for(code: str, rates: RateTable) -> float:
    if not has_rate(code, rates):
        raise MissingRateError([code])
    return rates[code]


def convert(amount: float, from_code: str, to_code: str, rates: RateTable) -> float:
    """
    Convert amount from one currency to another via USD.

    Same-currency conversion returns amount unchanged without touching
    the table.

    Raises:
        MissingRateError: If a non-USD side has no positive finite rate
    """
    if from_code == to_code:
        return amount

    amount_usd = amount if from_code == PIVOT_CURRENCY else amount / _rate_for(from_code, rates)
    return amount_usd if to_code == PIVOT_CURRENCY else amount_usd * _rate_for(to_code, rates)


def is_approximate(from_code: str, to_code: str) -> bool:
    """Whether converting between these codes yields an approximate amount."""
    return from_code != to_code


def missing_rates(codes: Iterable[str], target_code: str, rates: RateTable) -> set[str]:
    """
    Codes that a conversion of each of `codes` into target_code would lack.

    Codes equal to the target need no rate, and the target itself needs one
    only if at least one code differs from it.
    """
    missing = set()
    needs_target = False
    for code in codes:
        if code == target_code:
            continue
        needs_target = True
        if not has_rate(code, rates):
            missing.add(code)
    if needs_target and not has_rate(target_code, rates):
        missing.add(target_code)
    return missing


def format_amount(amount: float, code: str, is_approximate: bool = False) -> str:
    """
    Format an amount for display, e.g. '~1,234.50 EUR'.

    The '~' prefix marks amounts converted from another currency.
    """
    return f"{'~' if is_approximate else ''}{amount:,.2f} {code}"

