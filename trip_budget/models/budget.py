"""
Budget Result Models

Output of the cost-allocation engine. Every amount is carried together
with a flag telling whether it crossed currencies on the way to the
display currency.

DESIGN DECISION: Amounts are plain floats with no rounding.
Rounding to two decimals is a presentation concern; rounding here would
break the identity grand_total == sum of traveler totals.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BudgetModel(BaseModel):
    """Base for result models: camelCase aliases for presentation layers."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CurrencyTotal(BudgetModel):
    """
    An accumulating amount in the display currency.

    is_approximate is sticky: once any contribution was converted from
    another currency, the total stays approximate.
    """

    amount: float = 0.0
    is_approximate: bool = False

    def add(self, amount: float, is_approximate: bool) -> None:
        """Accumulate in place."""
        self.amount += amount
        self.is_approximate = self.is_approximate or is_approximate

    def __add__(self, other: 'CurrencyTotal') -> 'CurrencyTotal':
        return CurrencyTotal(
            amount=self.amount + other.amount,
            is_approximate=self.is_approximate or other.is_approximate,
        )


class CostSplit(BudgetModel):
    """Daily and one-time portions of one side (shared or personal) of a breakdown."""

    daily: CurrencyTotal = Field(default_factory=CurrencyTotal)
    one_time: CurrencyTotal = Field(default_factory=CurrencyTotal)


class TravelerCostBreakdown(BudgetModel):
    """What one traveler owes, by category."""

    shared: CostSplit = Field(default_factory=CostSplit)
    personal: CostSplit = Field(default_factory=CostSplit)
    total: CurrencyTotal = Field(default_factory=CurrencyTotal)


class CategoryTotals(BudgetModel):
    """
    Expense-level totals, computed independently of the per-traveler path.

    Daily categories hold per-day figures: the amortized daily cost of each
    daily shared expense and the daily rate of each daily personal expense.
    """

    daily_shared: CurrencyTotal = Field(default_factory=CurrencyTotal)
    daily_personal: CurrencyTotal = Field(default_factory=CurrencyTotal)
    one_time_shared: CurrencyTotal = Field(default_factory=CurrencyTotal)
    one_time_personal: CurrencyTotal = Field(default_factory=CurrencyTotal)


class BudgetSummary(BudgetModel):
    """
    Full result of one aggregation pass.

    traveler_costs holds an entry for every traveler on the roster,
    including those with no expenses at all.
    """

    display_currency: str
    traveler_costs: dict[str, TravelerCostBreakdown] = Field(default_factory=dict)
    grand_total: CurrencyTotal = Field(default_factory=CurrencyTotal)
    total_daily_cost: CurrencyTotal = Field(default_factory=CurrencyTotal)
    total_one_time_cost: CurrencyTotal = Field(default_factory=CurrencyTotal)
    category_totals: CategoryTotals = Field(default_factory=CategoryTotals)
    calculated_at: datetime = Field(default_factory=datetime.utcnow)

    def breakdown_for(self, traveler_id: str) -> TravelerCostBreakdown:
        """Breakdown for a traveler; unknown ids get an all-zero breakdown."""
        return self.traveler_costs.get(traveler_id) or TravelerCostBreakdown()
