"""
Trip State Models

These models define the canonical trip-state document: the roster, the
four expense catalogs and the usage records that assign travelers to
expenses.

They are designed to:
1. Mirror the persisted JSON shape (camelCase on the wire, snake_case in Python)
2. Reject malformed entries one at a time so migration can drop them
3. Stay immutable, so the engine can never change the snapshot it reads

DESIGN DECISION: Strict types for ids, names and amounts.
A traveler id of 42 or a cost of "100" is malformed input, not something
to coerce silently.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Iterator, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from trip_budget.models.currency import DEFAULT_DISPLAY_CURRENCY, normalize_currency


TRIP_STATE_VERSION = 1

TRAVELER_NAME_MAX_LENGTH = 100


# =============================================================================
# ENUMS
# =============================================================================

class SplitMode(str, Enum):
    """
    How a daily shared expense is divided.

    DAILY_OCCUPANCY: each day's amortized cost is split among that day's occupants.
    STAY_WEIGHTED: one per-night rate for the whole stay, charged per night present.
    """
    DAILY_OCCUPANCY = "dailyOccupancy"
    STAY_WEIGHTED = "stayWeighted"


_SPLIT_MODE_VALUES = frozenset(mode.value for mode in SplitMode)


class ExpenseType(str, Enum):
    """The four disjoint expense categories."""
    DAILY_SHARED = "dailyShared"
    DAILY_PERSONAL = "dailyPersonal"
    ONE_TIME_SHARED = "oneTimeShared"
    ONE_TIME_PERSONAL = "oneTimePersonal"

    @property
    def is_daily(self) -> bool:
        return self in (ExpenseType.DAILY_SHARED, ExpenseType.DAILY_PERSONAL)


def dedupe_ids(ids: list[str]) -> list[str]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


def is_iso_day(value: Any) -> bool:
    """True for strings of the exact form YYYY-MM-DD naming a real date."""
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def normalize_name(value: str) -> str:
    return value.strip().casefold()


def _require_number(v: Any) -> Any:
    """Ints and floats only; bools and numeric strings are malformed."""
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValueError(f"Expected a number, got {v!r}")
    return v


Amount = Annotated[float, BeforeValidator(_require_number), Field(allow_inf_nan=False)]


class TripModel(BaseModel):
    """Base for trip-state models: camelCase aliases, frozen instances."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )


# =============================================================================
# ROSTER
# =============================================================================

class Traveler(TripModel):
    """A trip participant. Identity is the id; names are unique per trip."""

    id: str = Field(..., min_length=1, strict=True)
    name: str = Field(..., min_length=1, max_length=TRAVELER_NAME_MAX_LENGTH, strict=True)

    @property
    def name_key(self) -> str:
        """Case-insensitive key used for uniqueness and name lookups."""
        return normalize_name(self.name)


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseBase(TripModel):
    """
    Fields common to every expense.

    Currency codes outside the supported set fall back to the display
    currency passed in the validation context ({"display_currency": ...}).
    Without a context an unsupported code is an error.
    """

    id: str = Field(..., min_length=1, strict=True)
    name: str = Field(..., min_length=1, max_length=200, strict=True)
    currency: str = Field(default="", validate_default=True)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency_code(cls, v: Any, info: ValidationInfo) -> str:
        normalized = normalize_currency(v)
        if normalized is not None:
            return normalized
        fallback = (info.context or {}).get("display_currency")
        if fallback:
            return fallback
        raise ValueError(f"Unsupported currency: {v!r}")


class DatedExpense(ExpenseBase):
    """An expense active over the half-open day range [start_date, end_date)."""

    start_date: str = Field(..., strict=True)
    end_date: str = Field(..., strict=True)

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_iso_day(cls, v: str) -> str:
        if not is_iso_day(v):
            raise ValueError(f"Expected an ISO date (YYYY-MM-DD), got {v!r}")
        return v

    @model_validator(mode='after')
    def validate_date_order(self) -> 'DatedExpense':
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self

    def covers(self, day: str) -> bool:
        """Whether a day key falls inside [start_date, end_date)."""
        return self.start_date <= day < self.end_date


class DailySharedExpense(DatedExpense):
    """A cost for the whole stay (e.g. lodging) split among occupants."""

    total_cost: Amount
    split_mode: SplitMode = Field(default=SplitMode.DAILY_OCCUPANCY)

    @field_validator('split_mode', mode='before')
    @classmethod
    def default_split_mode(cls, v: Any) -> SplitMode:
        """Absent or unknown modes mean daily occupancy."""
        if isinstance(v, str) and v in _SPLIT_MODE_VALUES:
            return SplitMode(v)
        return SplitMode.DAILY_OCCUPANCY


class DailyPersonalExpense(DatedExpense):
    """A per-day rate each assigned traveler pays in full (e.g. a daily pass)."""

    daily_cost: Amount


class OneTimeSharedExpense(ExpenseBase):
    """A single cost split evenly among the travelers who share it."""

    total_cost: Amount


class OneTimePersonalExpense(ExpenseBase):
    """A single cost that every assigned traveler owes in full."""

    total_cost: Amount


Expense = Union[
    DailySharedExpense,
    DailyPersonalExpense,
    OneTimeSharedExpense,
    OneTimePersonalExpense,
]

EXPENSE_MODELS: dict[ExpenseType, type[ExpenseBase]] = {
    ExpenseType.DAILY_SHARED: DailySharedExpense,
    ExpenseType.DAILY_PERSONAL: DailyPersonalExpense,
    ExpenseType.ONE_TIME_SHARED: OneTimeSharedExpense,
    ExpenseType.ONE_TIME_PERSONAL: OneTimePersonalExpense,
}

# TripState field holding each catalog
EXPENSE_FIELDS: dict[ExpenseType, str] = {
    ExpenseType.DAILY_SHARED: "daily_shared_expenses",
    ExpenseType.DAILY_PERSONAL: "daily_personal_expenses",
    ExpenseType.ONE_TIME_SHARED: "one_time_shared_expenses",
    ExpenseType.ONE_TIME_PERSONAL: "one_time_personal_expenses",
}


# =============================================================================
# USAGE
# =============================================================================

class DailyUsage(TripModel):
    """Assignments for one calendar day: expense id -> traveler ids."""

    daily_shared: dict[str, list[str]] = Field(default_factory=dict)
    daily_personal: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator('daily_shared', 'daily_personal')
    @classmethod
    def dedupe_assignments(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {expense_id: dedupe_ids(ids) for expense_id, ids in v.items()}

    def assignments(self, expense_type: ExpenseType) -> dict[str, list[str]]:
        if expense_type == ExpenseType.DAILY_SHARED:
            return self.daily_shared
        if expense_type == ExpenseType.DAILY_PERSONAL:
            return self.daily_personal
        raise ValueError(f"{expense_type.value} is not a daily expense type")

    @property
    def is_empty(self) -> bool:
        return not self.daily_shared and not self.daily_personal


class UsageCosts(TripModel):
    """
    Who uses what.

    One-time maps hold the travelers sharing (or individually incurring)
    each expense. `days` is keyed by ISO date; there is no separate day
    entity.
    """

    one_time_shared: dict[str, list[str]] = Field(default_factory=dict)
    one_time_personal: dict[str, list[str]] = Field(default_factory=dict)
    days: dict[str, DailyUsage] = Field(default_factory=dict)

    @field_validator('one_time_shared', 'one_time_personal')
    @classmethod
    def dedupe_assignments(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {expense_id: dedupe_ids(ids) for expense_id, ids in v.items()}

    def one_time_assignments(self, expense_type: ExpenseType) -> dict[str, list[str]]:
        if expense_type == ExpenseType.ONE_TIME_SHARED:
            return self.one_time_shared
        if expense_type == ExpenseType.ONE_TIME_PERSONAL:
            return self.one_time_personal
        raise ValueError(f"{expense_type.value} is not a one-time expense type")

    def referenced_traveler_ids(self) -> set[str]:
        """Every traveler id mentioned anywhere in usage."""
        ids: set[str] = set()
        for mapping in (self.one_time_shared, self.one_time_personal):
            for traveler_ids in mapping.values():
                ids.update(traveler_ids)
        for daily in self.days.values():
            for mapping in (daily.daily_shared, daily.daily_personal):
                for traveler_ids in mapping.values():
                    ids.update(traveler_ids)
        return ids


# =============================================================================
# TRIP STATE
# =============================================================================

class TripState(TripModel):
    """
    The canonical trip-state document.

    CRITICAL: Documents from outside (imports, shared links, stale storage)
    must go through migration first. The engine assumes the invariants
    that migration establishes.
    """

    version: int = Field(default=TRIP_STATE_VERSION, strict=True)
    travelers: list[Traveler] = Field(default_factory=list)
    daily_shared_expenses: list[DailySharedExpense] = Field(default_factory=list)
    daily_personal_expenses: list[DailyPersonalExpense] = Field(default_factory=list)
    one_time_shared_expenses: list[OneTimeSharedExpense] = Field(default_factory=list)
    one_time_personal_expenses: list[OneTimePersonalExpense] = Field(default_factory=list)
    usage_costs: UsageCosts = Field(default_factory=UsageCosts)

    # Optional trip-level span; empty when unset
    start_date: str = ""
    end_date: str = ""

    display_currency: str = DEFAULT_DISPLAY_CURRENCY

    @field_validator('display_currency', mode='before')
    @classmethod
    def normalize_display_currency(cls, v: Any) -> str:
        return normalize_currency(v) or DEFAULT_DISPLAY_CURRENCY

    @property
    def traveler_ids(self) -> set[str]:
        return {traveler.id for traveler in self.travelers}

    def expenses_of(self, expense_type: ExpenseType) -> list[Expense]:
        """The catalog for one expense category."""
        return getattr(self, EXPENSE_FIELDS[expense_type])

    def iter_expenses(self) -> Iterator[tuple[ExpenseType, Expense]]:
        for expense_type in ExpenseType:
            for expense in self.expenses_of(expense_type):
                yield expense_type, expense

    @property
    def dated_expenses(self) -> list[DatedExpense]:
        return [*self.daily_shared_expenses, *self.daily_personal_expenses]

    def to_document(self) -> dict:
        """Serialize to the persisted JSON shape (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)
