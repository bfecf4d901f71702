"""Cost-allocation engine package."""

from trip_budget.engine.aggregator import TripBudgetAggregator, aggregate
from trip_budget.engine.currency import (
    CurrencyConversionError,
    MissingRateError,
    RateTable,
    convert,
    format_amount,
    has_rate,
    is_approximate,
    missing_rates,
)
from trip_budget.engine.dates import (
    daily_amortized_cost,
    day_count,
    enumerate_days,
    is_day_in_range,
    parse_iso_date,
    shift_date,
    trip_date_range,
)
from trip_budget.engine.split import calculate_daily_shared_allocations

__all__ = [
    # Aggregation
    "TripBudgetAggregator",
    "aggregate",
    "calculate_daily_shared_allocations",
    # Currency
    "CurrencyConversionError",
    "MissingRateError",
    "RateTable",
    "convert",
    "format_amount",
    "has_rate",
    "is_approximate",
    "missing_rates",
    # Dates
    "daily_amortized_cost",
    "day_count",
    "enumerate_days",
    "is_day_in_range",
    "parse_iso_date",
    "shift_date",
    "trip_date_range",
]
