"""Tests for date range utilities (half-open ranges)."""

from datetime import date

import pytest

from trip_budget.engine.dates import (
    daily_amortized_cost,
    day_count,
    enumerate_days,
    is_day_in_range,
    parse_iso_date,
    shift_date,
    trip_date_range,
)
from trip_budget.models.trip import DailyPersonalExpense, DailySharedExpense


class TestDayCount:
    """Tests for day_count() and enumerate_days()."""

    def test_whole_days(self):
        """The end date is a checkout boundary, not an active day."""
        assert day_count("2024-01-01", "2024-01-05") == 4

    def test_across_month_and_leap_day(self):
        assert day_count("2024-02-28", "2024-03-01") == 2

    def test_reversed_range_clamps_to_zero(self):
        assert day_count("2024-01-05", "2024-01-01") == 0

    def test_empty_range(self):
        assert day_count("2024-01-01", "2024-01-01") == 0

    @pytest.mark.parametrize("start,end", [
        ("", "2024-01-05"),
        ("2024-01-01", "not-a-date"),
        ("2024-13-01", "2024-12-31"),
    ])
    def test_unparseable_dates_clamp_to_zero(self, start, end):
        assert day_count(start, end) == 0

    def test_enumerate_days(self):
        assert enumerate_days("2024-01-30", "2024-02-02") == [
            "2024-01-30",
            "2024-01-31",
            "2024-02-01",
        ]

    def test_enumerate_degenerate_range(self):
        assert enumerate_days("2024-01-05", "2024-01-01") == []


class TestAmortization:
    """Tests for daily_amortized_cost()."""

    def test_spreads_total_over_days(self):
        assert daily_amortized_cost(100.0, "2024-01-01", "2024-01-05") == 25.0

    def test_zero_length_range_charges_total_once(self):
        """No division by zero: the whole total is a single day."""
        assert daily_amortized_cost(100.0, "2024-01-01", "2024-01-01") == 100.0


class TestDateHelpers:
    """Tests for parsing, shifting and range membership."""

    def test_parse_iso_date(self):
        assert parse_iso_date("2024-06-01") == date(2024, 6, 1)

    def test_parse_iso_datetime(self):
        assert parse_iso_date("2024-06-01T10:30:00") == date(2024, 6, 1)

    def test_parse_invalid(self):
        assert parse_iso_date("June 1st") is None
        assert parse_iso_date(None) is None

    def test_shift_date(self):
        assert shift_date("2024-12-31", 1) == "2025-01-01"
        assert shift_date("2024-03-01", -1) == "2024-02-29"
        assert shift_date("garbage", 1) is None

    def test_is_day_in_range_half_open(self):
        assert is_day_in_range("2024-01-01", "2024-01-01", "2024-01-04") is True
        assert is_day_in_range("2024-01-03", "2024-01-01", "2024-01-04") is True
        assert is_day_in_range("2024-01-04", "2024-01-01", "2024-01-04") is False

    def test_trip_date_range(self):
        """Earliest start and latest end across dated expenses."""
        expenses = [
            DailySharedExpense(
                id="hotel", name="Hotel", currency="USD", total_cost=300.0,
                start_date="2024-01-02", end_date="2024-01-05",
            ),
            DailyPersonalExpense(
                id="pass", name="Pass", currency="USD", daily_cost=5.0,
                start_date="2024-01-01", end_date="2024-01-03",
            ),
        ]
        assert trip_date_range(expenses) == ("2024-01-01", "2024-01-05")

    def test_trip_date_range_empty(self):
        assert trip_date_range([]) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
