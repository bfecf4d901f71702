"""
Tests for the trip budget aggregator.

Expected figures for the shared trip fixture (rates: EUR 0.8, GBP 0.5):
- Hotel, 300 USD over 3 days, daily occupancy: a=150, b=150
- Metro pass, 8 EUR/day = 10 USD/day: a two days, b one day
- Airport taxi, 90 USD shared by a, b, c: 30 each
- Museum, 20 GBP = 40 USD, personal to a and b: 40 each
"""

import pytest

from trip_budget.engine.aggregator import TripBudgetAggregator, aggregate
from trip_budget.engine.currency import MissingRateError
from trip_budget.models.budget import TravelerCostBreakdown
from trip_budget.models.trip import (
    DailySharedExpense,
    DailyUsage,
    OneTimePersonalExpense,
    OneTimeSharedExpense,
    SplitMode,
    Traveler,
    TripState,
    UsageCosts,
)


def make_state(**fields):
    fields.setdefault("travelers", [Traveler(id="a", name="Ana"), Traveler(id="b", name="Ben")])
    return TripState(**fields)


class TestTravelerBreakdowns:
    """Per-traveler results for the shared fixture."""

    def test_every_roster_traveler_appears(self, trip_state, rates):
        """Roster completeness, including travelers with nothing assigned."""
        summary = aggregate(trip_state, rates)
        assert set(summary.traveler_costs) == {"a", "b", "c"}

    def test_traveler_without_usage_is_all_zero(self, rates):
        state = make_state(travelers=[Traveler(id="z", name="Zoe")])

        summary = aggregate(state, rates)

        assert summary.traveler_costs["z"] == TravelerCostBreakdown()
        assert summary.grand_total.amount == 0.0

    def test_breakdown_categories(self, trip_state, rates):
        summary = aggregate(trip_state, rates)
        ana = summary.traveler_costs["a"]

        assert ana.shared.daily.amount == pytest.approx(150.0)
        assert ana.personal.daily.amount == pytest.approx(20.0)
        assert ana.shared.one_time.amount == pytest.approx(30.0)
        assert ana.personal.one_time.amount == pytest.approx(40.0)
        assert ana.total.amount == pytest.approx(240.0)

    def test_traveler_totals(self, trip_state, rates):
        summary = aggregate(trip_state, rates)

        assert summary.traveler_costs["b"].total.amount == pytest.approx(230.0)
        assert summary.traveler_costs["c"].total.amount == pytest.approx(30.0)

    def test_approximate_flags_follow_conversions(self, trip_state, rates):
        summary = aggregate(trip_state, rates)
        ana = summary.traveler_costs["a"]
        cleo = summary.traveler_costs["c"]

        assert ana.shared.daily.is_approximate is False
        assert ana.personal.daily.is_approximate is True
        assert ana.total.is_approximate is True
        assert cleo.total.is_approximate is False

    def test_breakdown_for_unknown_traveler(self, trip_state, rates):
        summary = aggregate(trip_state, rates)
        assert summary.breakdown_for("nobody") == TravelerCostBreakdown()


class TestTotals:
    """Grand total and category totals."""

    def test_grand_total_is_sum_of_traveler_totals(self, trip_state, rates):
        """No rounding: the grand total is exactly the plain sum."""
        summary = aggregate(trip_state, rates)

        expected = 0.0
        for traveler in trip_state.travelers:
            expected += summary.traveler_costs[traveler.id].total.amount

        assert summary.grand_total.amount == expected
        assert summary.grand_total.amount == pytest.approx(500.0)
        assert summary.grand_total.is_approximate is True

    def test_category_totals(self, trip_state, rates):
        """Daily categories are per-day figures."""
        summary = aggregate(trip_state, rates)
        totals = summary.category_totals

        assert totals.daily_shared.amount == pytest.approx(100.0)
        assert totals.daily_personal.amount == pytest.approx(10.0)
        assert totals.one_time_shared.amount == pytest.approx(90.0)
        assert totals.one_time_personal.amount == pytest.approx(20.0 / 0.5)
        assert summary.total_daily_cost.amount == pytest.approx(110.0)
        assert summary.total_one_time_cost.amount == pytest.approx(130.0)


class TestScenarios:
    """Allocation scenarios end to end."""

    def _hotel_state(self, split_mode, days):
        hotel = DailySharedExpense(
            id="hotel",
            name="Hotel",
            currency="USD",
            total_cost=300.0,
            start_date="2024-01-01",
            end_date="2024-01-04",
            split_mode=split_mode,
        )
        usage = UsageCosts(days={
            day: DailyUsage(daily_shared={"hotel": ids}) for day, ids in days.items()
        })
        return make_state(daily_shared_expenses=[hotel], usage_costs=usage)

    def test_stay_weighted_225_75(self):
        state = self._hotel_state(SplitMode.STAY_WEIGHTED, {
            "2024-01-01": ["a", "b"],
            "2024-01-02": ["a"],
            "2024-01-03": ["a"],
        })

        summary = aggregate(state, {"USD": 1.0})

        assert summary.traveler_costs["a"].shared.daily.amount == pytest.approx(225.0)
        assert summary.traveler_costs["b"].shared.daily.amount == pytest.approx(75.0)

    def test_daily_occupancy_150_150(self):
        state = self._hotel_state(SplitMode.DAILY_OCCUPANCY, {
            "2024-01-01": ["a", "b"],
            "2024-01-02": ["a"],
            "2024-01-03": ["b"],
        })

        summary = aggregate(state, {"USD": 1.0})

        assert summary.traveler_costs["a"].total.amount == pytest.approx(150.0)
        assert summary.traveler_costs["b"].total.amount == pytest.approx(150.0)

    def test_one_time_personal_is_not_split(self):
        """Each assignee owes the full cost: 50 each, not 25."""
        state = make_state(
            one_time_personal_expenses=[
                OneTimePersonalExpense(id="visa", name="Visa", currency="USD", total_cost=50.0),
            ],
            usage_costs=UsageCosts(one_time_personal={"visa": ["a", "b"]}),
        )

        summary = aggregate(state, {"USD": 1.0})

        assert summary.traveler_costs["a"].personal.one_time.amount == 50.0
        assert summary.traveler_costs["b"].personal.one_time.amount == 50.0
        assert summary.grand_total.amount == 100.0

    def test_one_time_shared_is_split_evenly(self):
        state = make_state(
            one_time_shared_expenses=[
                OneTimeSharedExpense(id="car", name="Car", currency="EUR", total_cost=80.0),
            ],
            usage_costs=UsageCosts(one_time_shared={"car": ["a", "b"]}),
        )

        summary = aggregate(state, {"EUR": 0.8})

        assert summary.traveler_costs["a"].shared.one_time.amount == pytest.approx(50.0)
        assert summary.traveler_costs["a"].shared.one_time.is_approximate is True

    def test_unassigned_one_time_shared_is_unallocated(self):
        state = make_state(
            one_time_shared_expenses=[
                OneTimeSharedExpense(id="car", name="Car", currency="USD", total_cost=80.0),
            ],
        )

        summary = aggregate(state, {"USD": 1.0})

        assert summary.grand_total.amount == 0.0
        assert summary.category_totals.one_time_shared.amount == 80.0

    def test_display_currency_other_than_usd(self):
        """Totals are reported in the requested display currency."""
        state = make_state(
            one_time_personal_expenses=[
                OneTimePersonalExpense(id="visa", name="Visa", currency="USD", total_cost=50.0),
            ],
            usage_costs=UsageCosts(one_time_personal={"visa": ["a"]}),
        )

        summary = aggregate(state, {"EUR": 0.8}, display_currency="EUR")

        assert summary.display_currency == "EUR"
        assert summary.grand_total.amount == pytest.approx(40.0)
        assert summary.grand_total.is_approximate is True


class TestRobustness:
    """Rates and stale references."""

    def test_missing_rates_are_all_reported(self, trip_state):
        """The check runs before any work and names every missing code."""
        with pytest.raises(MissingRateError) as exc_info:
            aggregate(trip_state, {"USD": 1.0})
        assert exc_info.value.currencies == ["EUR", "GBP"]

    def test_input_state_is_not_modified(self, trip_state, rates):
        before = trip_state.model_dump()
        aggregate(trip_state, rates)
        assert trip_state.model_dump() == before

    def test_unknown_references_are_skipped(self, rates):
        """Usage naming unknown travelers or expenses contributes nothing."""
        state = make_state(
            one_time_shared_expenses=[
                OneTimeSharedExpense(id="car", name="Car", currency="USD", total_cost=90.0),
            ],
            usage_costs=UsageCosts(
                one_time_shared={"car": ["a", "ghost", "b"]},
                days={"2024-01-01": DailyUsage(daily_personal={"gone": ["a"]})},
            ),
        )

        summary = aggregate(state, rates)

        # The ghost's share is not redistributed
        assert summary.traveler_costs["a"].total.amount == pytest.approx(30.0)
        assert "ghost" not in summary.traveler_costs
        assert summary.grand_total.amount == pytest.approx(60.0)

    def test_aggregator_defaults_to_explicit_currency(self, trip_state, rates):
        aggregator = TripBudgetAggregator(rates, "GBP")
        summary = aggregator.aggregate(trip_state)
        assert summary.display_currency == "GBP"
        assert summary.grand_total.amount == pytest.approx(250.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
