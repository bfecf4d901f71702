"""
Daily-Shared Split Calculator

Divides one daily shared expense among the travelers assigned to it on
each day of its range.

Two policies:

DAILY OCCUPANCY:
- Each day in [start, end) costs total / day_count
- That day's cost is split evenly among the travelers present that day
- A day with nobody assigned contributes nothing; its cost is dropped,
  not moved to other days

STAY WEIGHTED:
- Count nights per traveler across the range
- One rate for the whole stay: converted total / total nights
- Each traveler pays rate * their nights
- No nights at all means no allocations

The result is SPARSE: travelers with no allocation are absent, and
absence means zero.
"""

from collections import defaultdict
from typing import Callable, Mapping

from trip_budget.models.budget import CurrencyTotal
from trip_budget.models.trip import DailySharedExpense, DailyUsage, SplitMode

ConvertAmount = Callable[[float, str], CurrencyTotal]
DailyCostCalculator = Callable[[float, str, str, str], CurrencyTotal]


def _assigned_by_day(
    expense: DailySharedExpense,
    usage_by_day: Mapping[str, DailyUsage],
) -> list[list[str]]:
    """Traveler lists for this expense on each day in its range, in day order."""
    return [
        usage_by_day[day].daily_shared.get(expense.id, [])
        for day in sorted(usage_by_day)
        if expense.covers(day)
    ]


def _stay_weighted(
    expense: DailySharedExpense,
    assigned: list[list[str]],
    convert_amount: ConvertAmount,
) -> dict[str, CurrencyTotal]:
    nights: dict[str, int] = defaultdict(int)
    for traveler_ids in assigned:
        for traveler_id in traveler_ids:
            nights[traveler_id] += 1

    total_nights = sum(nights.values())
    if total_nights == 0:
        return {}

    converted_total = convert_amount(expense.total_cost, expense.currency)
    per_night = converted_total.amount / total_nights

    allocations: dict[str, CurrencyTotal] = defaultdict(CurrencyTotal)
    for traveler_id, count in nights.items():
        allocations[traveler_id].add(per_night * count, converted_total.is_approximate)
    return dict(allocations)


def _daily_occupancy(
    expense: DailySharedExpense,
    assigned: list[list[str]],
    calculate_daily_cost: DailyCostCalculator,
) -> dict[str, CurrencyTotal]:
    daily_cost = calculate_daily_cost(
        expense.total_cost,
        expense.start_date,
        expense.end_date,
        expense.currency,
    )

    allocations: dict[str, CurrencyTotal] = defaultdict(CurrencyTotal)
    for traveler_ids in assigned:
        if not traveler_ids:
            continue
        cost_per_person = daily_cost.amount / len(traveler_ids)
        for traveler_id in traveler_ids:
            allocations[traveler_id].add(cost_per_person, daily_cost.is_approximate)
    return dict(allocations)


def calculate_daily_shared_allocations(
    expense: DailySharedExpense,
    usage_by_day: Mapping[str, DailyUsage],
    convert_amount: ConvertAmount,
    calculate_daily_cost: DailyCostCalculator,
) -> dict[str, CurrencyTotal]:
    """
    Allocate one daily shared expense to travelers.

    Args:
        expense: The expense to split
        usage_by_day: Day key -> that day's usage record (the whole trip's)
        convert_amount: (amount, currency) -> amount in the display currency
        calculate_daily_cost: (total, start, end, currency) -> converted
            amortized cost of one day

    Returns:
        Sparse mapping traveler id -> allocated amount. Callers default
        absent travelers to zero.
    """
    assigned = _assigned_by_day(expense, usage_by_day)

    if expense.split_mode == SplitMode.STAY_WEIGHTED:
        return _stay_weighted(expense, assigned, convert_amount)
    return _daily_occupancy(expense, assigned, calculate_daily_cost)
