"""
Trip Budget Aggregator

DESIGN DECISION: Aggregation is DETERMINISTIC and PURE.
It reads a migrated trip snapshot, a rate table and a display currency,
and returns a new BudgetSummary. Nothing it receives is modified, and
there is no ambient currency or rate state: both are explicit arguments.

Processing order:
1. Zero breakdown for every traveler on the roster
2. Daily shared expenses (via the split calculator) -> shared.daily
3. Daily personal assignments, per day, full daily rate -> personal.daily
4. One-time shared expenses, split evenly -> shared.one_time
5. One-time personal expenses, full cost per assignee -> personal.one_time
6. Category totals from expense-level amounts (independent cross-check path)
7. Grand total = sum of traveler totals

CRITICAL: Every currency in use must have a rate. The aggregator checks
up front and raises MissingRateError naming all missing codes.
"""

from typing import Optional

import structlog

from trip_budget.engine.currency import (
    MissingRateError,
    RateTable,
    convert,
    is_approximate,
    missing_rates,
)
from trip_budget.engine.dates import daily_amortized_cost
from trip_budget.engine.split import calculate_daily_shared_allocations
from trip_budget.models.budget import (
    BudgetSummary,
    CategoryTotals,
    CurrencyTotal,
    TravelerCostBreakdown,
)
from trip_budget.models.trip import TripState


logger = structlog.get_logger(__name__)


class TripBudgetAggregator:
    """
    Computes per-traveler cost breakdowns for one rate table and display currency.

    GUARANTEES:
    - Every roster traveler appears in the result, even with all-zero totals
    - grand_total.amount is exactly the sum of traveler totals
    - No rounding is applied
    """

    def __init__(self, rates: RateTable, display_currency: str):
        self._rates = rates
        self._display_currency = display_currency

    @property
    def display_currency(self) -> str:
        return self._display_currency

    def convert_amount(self, amount: float, currency: str) -> CurrencyTotal:
        """Convert into the display currency, flagging cross-currency amounts."""
        return CurrencyTotal(
            amount=convert(amount, currency, self._display_currency, self._rates),
            is_approximate=is_approximate(currency, self._display_currency),
        )

    def daily_cost(
        self,
        total_cost: float,
        start_date: str,
        end_date: str,
        currency: str,
    ) -> CurrencyTotal:
        """Amortized cost of one day of [start_date, end_date), converted."""
        return self.convert_amount(
            daily_amortized_cost(total_cost, start_date, end_date),
            currency,
        )

    def check_rates(self, trip_state: TripState) -> None:
        """
        Verify the rate table covers every expense currency.

        Raises:
            MissingRateError: Listing every currency without a usable rate
        """
        currencies = {expense.currency for _, expense in trip_state.iter_expenses()}
        missing = missing_rates(currencies, self._display_currency, self._rates)
        if missing:
            logger.error(
                "exchange_rates_missing",
                currencies=sorted(missing),
                display_currency=self._display_currency,
            )
            raise MissingRateError(missing)

    def aggregate(self, trip_state: TripState) -> BudgetSummary:
        """Run the full aggregation pass."""
        self.check_rates(trip_state)

        traveler_costs = {
            traveler.id: TravelerCostBreakdown() for traveler in trip_state.travelers
        }

        self._add_daily_shared(trip_state, traveler_costs)
        self._add_daily_personal(trip_state, traveler_costs)
        self._add_one_time_shared(trip_state, traveler_costs)
        self._add_one_time_personal(trip_state, traveler_costs)

        category_totals = self._category_totals(trip_state)

        grand_total = CurrencyTotal()
        for breakdown in traveler_costs.values():
            grand_total = grand_total + breakdown.total

        return BudgetSummary(
            display_currency=self._display_currency,
            traveler_costs=traveler_costs,
            grand_total=grand_total,
            total_daily_cost=category_totals.daily_shared + category_totals.daily_personal,
            total_one_time_cost=(
                category_totals.one_time_shared + category_totals.one_time_personal
            ),
            category_totals=category_totals,
        )

    # -------------------------------------------------------------------------
    # Per-category steps
    # -------------------------------------------------------------------------

    def _credit(
        self,
        traveler_costs: dict[str, TravelerCostBreakdown],
        traveler_id: str,
        side: str,
        period: str,
        amount: float,
        approximate: bool,
        expense_id: str,
    ) -> None:
        """Add an amount to one breakdown leaf and to the traveler's total."""
        costs = traveler_costs.get(traveler_id)
        if costs is None:
            logger.warning(
                "usage_references_unknown_traveler",
                traveler_id=traveler_id,
                expense_id=expense_id,
            )
            return

        getattr(getattr(costs, side), period).add(amount, approximate)
        costs.total.add(amount, approximate)

    def _add_daily_shared(
        self,
        trip_state: TripState,
        traveler_costs: dict[str, TravelerCostBreakdown],
    ) -> None:
        for expense in trip_state.daily_shared_expenses:
            allocations = calculate_daily_shared_allocations(
                expense,
                trip_state.usage_costs.days,
                self.convert_amount,
                self.daily_cost,
            )
            for traveler_id, allocation in allocations.items():
                self._credit(
                    traveler_costs,
                    traveler_id,
                    "shared",
                    "daily",
                    allocation.amount,
                    allocation.is_approximate,
                    expense.id,
                )

    def _add_daily_personal(
        self,
        trip_state: TripState,
        traveler_costs: dict[str, TravelerCostBreakdown],
    ) -> None:
        daily_rates = {
            expense.id: self.convert_amount(expense.daily_cost, expense.currency)
            for expense in trip_state.daily_personal_expenses
        }
        days = trip_state.usage_costs.days

        for day in sorted(days):
            for expense_id, traveler_ids in days[day].daily_personal.items():
                daily_rate = daily_rates.get(expense_id)
                if daily_rate is None:
                    logger.warning(
                        "usage_references_unknown_expense",
                        expense_id=expense_id,
                        day=day,
                    )
                    continue
                for traveler_id in traveler_ids:
                    self._credit(
                        traveler_costs,
                        traveler_id,
                        "personal",
                        "daily",
                        daily_rate.amount,
                        daily_rate.is_approximate,
                        expense_id,
                    )

    def _add_one_time_shared(
        self,
        trip_state: TripState,
        traveler_costs: dict[str, TravelerCostBreakdown],
    ) -> None:
        usage = trip_state.usage_costs.one_time_shared
        for expense in trip_state.one_time_shared_expenses:
            traveler_ids = usage.get(expense.id, [])
            if not traveler_ids:
                continue
            converted = self.convert_amount(expense.total_cost, expense.currency)
            cost_per_person = converted.amount / len(traveler_ids)
            for traveler_id in traveler_ids:
                self._credit(
                    traveler_costs,
                    traveler_id,
                    "shared",
                    "one_time",
                    cost_per_person,
                    converted.is_approximate,
                    expense.id,
                )

    def _add_one_time_personal(
        self,
        trip_state: TripState,
        traveler_costs: dict[str, TravelerCostBreakdown],
    ) -> None:
        usage = trip_state.usage_costs.one_time_personal
        for expense in trip_state.one_time_personal_expenses:
            converted = self.convert_amount(expense.total_cost, expense.currency)
            # Each assignee owes the full cost
            for traveler_id in usage.get(expense.id, []):
                self._credit(
                    traveler_costs,
                    traveler_id,
                    "personal",
                    "one_time",
                    converted.amount,
                    converted.is_approximate,
                    expense.id,
                )

    def _category_totals(self, trip_state: TripState) -> CategoryTotals:
        totals = CategoryTotals()

        for expense in trip_state.daily_shared_expenses:
            daily = self.daily_cost(
                expense.total_cost,
                expense.start_date,
                expense.end_date,
                expense.currency,
            )
            totals.daily_shared.add(daily.amount, daily.is_approximate)

        for expense in trip_state.daily_personal_expenses:
            daily = self.convert_amount(expense.daily_cost, expense.currency)
            totals.daily_personal.add(daily.amount, daily.is_approximate)

        for expense in trip_state.one_time_shared_expenses:
            converted = self.convert_amount(expense.total_cost, expense.currency)
            totals.one_time_shared.add(converted.amount, converted.is_approximate)

        for expense in trip_state.one_time_personal_expenses:
            converted = self.convert_amount(expense.total_cost, expense.currency)
            totals.one_time_personal.add(converted.amount, converted.is_approximate)

        return totals


def aggregate(
    trip_state: TripState,
    rates: RateTable,
    display_currency: Optional[str] = None,
) -> BudgetSummary:
    """
    Compute the budget for a migrated trip state.

    display_currency defaults to the document's own display currency.

    Raises:
        MissingRateError: If a currency in use has no rate
    """
    currency = display_currency or trip_state.display_currency
    return TripBudgetAggregator(rates, currency).aggregate(trip_state)
