"""
Date Range Utilities

Day arithmetic over ISO date strings. Ranges are half-open: the end date
is the checkout boundary, not an active day.

Degenerate input (unparseable dates, end on or before start) is clamped
to zero days rather than raised.
"""

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from trip_budget.models.trip import DatedExpense


def parse_iso_date(value: Any) -> Optional[date]:
    """
    Parse an ISO date (or datetime) string to a calendar date.

    Returns None for anything that does not parse.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def day_count(start: str, end: str) -> int:
    """Whole days in [start, end); 0 if either fails to parse or end <= start."""
    start_day = parse_iso_date(start)
    end_day = parse_iso_date(end)
    if start_day is None or end_day is None:
        return 0
    return max((end_day - start_day).days, 0)


def enumerate_days(start: str, end: str) -> list[str]:
    """ISO strings for start, start+1, ..., end-1. Empty for degenerate ranges."""
    count = day_count(start, end)
    if count == 0:
        return []
    first = parse_iso_date(start)
    return [(first + timedelta(days=offset)).isoformat() for offset in range(count)]


def daily_amortized_cost(total: float, start: str, end: str) -> float:
    """
    Spread total over the days of [start, end).

    A zero-length range charges the whole total as a single day.
    """
    count = day_count(start, end)
    if count <= 0:
        return total
    return total / count


def shift_date(value: str, offset: int) -> Optional[str]:
    """The ISO date `offset` days after value, or None if value does not parse."""
    parsed = parse_iso_date(value)
    if parsed is None:
        return None
    return (parsed + timedelta(days=offset)).isoformat()


def is_day_in_range(day: str, start: str, end: str) -> bool:
    """Whether day falls in [start, end), comparing ISO strings."""
    return start <= day < end


def trip_date_range(expenses: Iterable[DatedExpense]) -> Optional[tuple[str, str]]:
    """
    Implied span of a trip: earliest start and latest end across dated expenses.

    Returns None when no expense has a parseable date.
    """
    days = []
    for expense in expenses:
        for value in (expense.start_date, expense.end_date):
            parsed = parse_iso_date(value)
            if parsed is not None:
                days.append(parsed)

    if not days:
        return None
    return min(days).isoformat(), max(days).isoformat()
