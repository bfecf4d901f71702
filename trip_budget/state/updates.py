"""
Trip State Updates

Incremental edits to a trip: roster and expense CRUD, usage assignment
and trip date changes.

DESIGN DECISION: Every update returns a NEW TripState.
The input snapshot is never modified, so a state handed to the engine
stays valid while the caller keeps editing.

Updates keep the document invariants:
- Traveler names stay unique (case-insensitive)
- Removing a traveler or an expense removes every usage reference to it
- Usage only ever names travelers and expenses that exist
"""

from typing import Any, Iterable, Optional
from uuid import uuid4

from pydantic import ValidationError

from trip_budget.migration.migrator import prune_usage_to_travelers
from trip_budget.models.trip import (
    EXPENSE_FIELDS,
    EXPENSE_MODELS,
    DailyUsage,
    DatedExpense,
    Expense,
    ExpenseType,
    Traveler,
    TripState,
    UsageCosts,
    dedupe_ids,
    is_iso_day,
    normalize_name,
)


class TripStateUpdateError(Exception):
    """Base error for trip state updates."""
    pass


class TravelerNotFoundError(TripStateUpdateError):
    """Referenced traveler doesn't exist."""
    pass


class DuplicateTravelerNameError(TripStateUpdateError):
    """Another traveler already uses this name."""
    pass


class InvalidTravelerError(TripStateUpdateError):
    """Traveler fields break the roster rules (e.g. name too long)."""
    pass


class ExpenseNotFoundError(TripStateUpdateError):
    """Referenced expense doesn't exist."""
    pass


class InvalidExpenseError(TripStateUpdateError):
    """Expense fields are missing or inconsistent."""
    pass


# TripState.usage_costs / DailyUsage field holding each category's assignments
_USAGE_FIELDS: dict[ExpenseType, str] = {
    ExpenseType.DAILY_SHARED: "daily_shared",
    ExpenseType.DAILY_PERSONAL: "daily_personal",
    ExpenseType.ONE_TIME_SHARED: "one_time_shared",
    ExpenseType.ONE_TIME_PERSONAL: "one_time_personal",
}


def generate_id() -> str:
    return str(uuid4())


def _validation_message(error: ValidationError) -> str:
    """One line per failed field, e.g. 'totalCost: Field required'."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)


# =============================================================================
# LOOKUPS
# =============================================================================

def sort_travelers(travelers: Iterable[Traveler]) -> list[Traveler]:
    """Roster order: by name, case-insensitive."""
    return sorted(travelers, key=lambda traveler: (traveler.name_key, traveler.id))


def find_traveler(
    state: TripState,
    traveler_id: Optional[str] = None,
    traveler_name: Optional[str] = None,
) -> Optional[Traveler]:
    """
    Resolve a traveler by id, or else by name.

    A name only resolves when exactly one traveler matches it.
    """
    if traveler_id:
        return next((t for t in state.travelers if t.id == traveler_id), None)
    if traveler_name:
        target = normalize_name(traveler_name)
        matches = [t for t in state.travelers if t.name_key == target]
        if len(matches) == 1:
            return matches[0]
    return None


def get_expense_list(state: TripState, expense_type: ExpenseType) -> list[Expense]:
    return state.expenses_of(expense_type)


def find_expense(
    state: TripState,
    expense_type: ExpenseType,
    expense_id: Optional[str] = None,
    expense_name: Optional[str] = None,
) -> Optional[Expense]:
    """Resolve an expense of one category by id, or else by unique name."""
    expenses = get_expense_list(state, expense_type)
    if expense_id:
        return next((e for e in expenses if e.id == expense_id), None)
    if expense_name:
        target = normalize_name(expense_name)
        matches = [e for e in expenses if normalize_name(e.name) == target]
        if len(matches) == 1:
            return matches[0]
    return None


def _require_expense(state: TripState, expense_type: ExpenseType, expense_id: str) -> Expense:
    expense = find_expense(state, expense_type, expense_id=expense_id)
    if expense is None:
        raise ExpenseNotFoundError(f"No {expense_type.value} expense with id {expense_id!r}")
    return expense


def _require_travelers(state: TripState, traveler_ids: Iterable[str]) -> list[str]:
    ids = dedupe_ids(list(traveler_ids))
    unknown = [traveler_id for traveler_id in ids if traveler_id not in state.traveler_ids]
    if unknown:
        raise TravelerNotFoundError(f"Unknown traveler ids: {', '.join(unknown)}")
    return ids


# =============================================================================
# TRAVELERS
# =============================================================================

def _clean_name(name: str) -> str:
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise TripStateUpdateError("Traveler name is required")
    return cleaned


def _build_traveler(traveler_id: str, name: str) -> Traveler:
    try:
        return Traveler.model_validate({"id": traveler_id, "name": name})
    except ValidationError as e:
        raise InvalidTravelerError(_validation_message(e)) from e


def _require_unique_name(state: TripState, name: str, exclude_id: Optional[str] = None) -> None:
    key = normalize_name(name)
    for traveler in state.travelers:
        if traveler.id != exclude_id and traveler.name_key == key:
            raise DuplicateTravelerNameError(f"A traveler named {traveler.name!r} already exists")


def add_traveler(state: TripState, name: str, traveler_id: Optional[str] = None) -> TripState:
    """Add a traveler with a fresh id (unless one is given)."""
    name = _clean_name(name)
    _require_unique_name(state, name)

    traveler_id = traveler_id or generate_id()
    if traveler_id in state.traveler_ids:
        raise TripStateUpdateError(f"Traveler id {traveler_id!r} is already in use")

    traveler = _build_traveler(traveler_id, name)
    return state.model_copy(update={"travelers": sort_travelers([*state.travelers, traveler])})


def rename_traveler(state: TripState, traveler_id: str, new_name: str) -> TripState:
    new_name = _clean_name(new_name)
    if find_traveler(state, traveler_id=traveler_id) is None:
        raise TravelerNotFoundError(f"No traveler with id {traveler_id!r}")
    _require_unique_name(state, new_name, exclude_id=traveler_id)

    travelers = [
        _build_traveler(traveler.id, new_name) if traveler.id == traveler_id else traveler
        for traveler in state.travelers
    ]
    return state.model_copy(update={"travelers": sort_travelers(travelers)})


def remove_traveler(state: TripState, traveler_id: str) -> TripState:
    """Remove a traveler and every usage reference to them."""
    if find_traveler(state, traveler_id=traveler_id) is None:
        raise TravelerNotFoundError(f"No traveler with id {traveler_id!r}")

    travelers = [traveler for traveler in state.travelers if traveler.id != traveler_id]
    usage = prune_usage_to_travelers(
        state.usage_costs,
        {traveler.id for traveler in travelers},
    )
    return state.model_copy(update={"travelers": travelers, "usage_costs": usage})


# =============================================================================
# EXPENSES
# =============================================================================

def create_expense(
    state: TripState,
    expense_type: ExpenseType,
    name: str,
    currency: Optional[str] = None,
    total_cost: Optional[float] = None,
    daily_cost: Optional[float] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    split_mode: Optional[str] = None,
    expense_id: Optional[str] = None,
) -> Expense:
    """
    Build (but don't add) a validated expense of the given category.

    Unsupported currencies fall back to the trip's display currency.

    Raises:
        InvalidExpenseError: If required fields for the category are missing
    """
    fields: dict[str, Any] = {
        "id": expense_id or generate_id(),
        "name": name,
        "currency": currency,
    }
    if expense_type in (
        ExpenseType.DAILY_SHARED,
        ExpenseType.ONE_TIME_SHARED,
        ExpenseType.ONE_TIME_PERSONAL,
    ):
        fields["total_cost"] = total_cost
    if expense_type == ExpenseType.DAILY_PERSONAL:
        fields["daily_cost"] = daily_cost
    if expense_type.is_daily:
        fields["start_date"] = start_date
        fields["end_date"] = end_date
    if expense_type == ExpenseType.DAILY_SHARED and split_mode is not None:
        fields["split_mode"] = split_mode

    try:
        return EXPENSE_MODELS[expense_type].model_validate(
            fields,
            context={"display_currency": state.display_currency},
        )
    except ValidationError as e:
        raise InvalidExpenseError(_validation_message(e)) from e


def add_expense(state: TripState, expense_type: ExpenseType, expense: Expense) -> TripState:
    if not isinstance(expense, EXPENSE_MODELS[expense_type]):
        raise InvalidExpenseError(
            f"{type(expense).__name__} is not a {expense_type.value} expense"
        )
    if find_expense(state, expense_type, expense_id=expense.id) is not None:
        raise InvalidExpenseError(f"Expense id {expense.id!r} is already in use")

    field = EXPENSE_FIELDS[expense_type]
    return state.model_copy(update={field: [*getattr(state, field), expense]})


def update_expense(
    state: TripState,
    expense_type: ExpenseType,
    expense_id: str,
    **changes: Any,
) -> TripState:
    """
    Change fields of an expense. None values leave a field unchanged.

    An unsupported new currency keeps the expense's current currency.
    """
    current = _require_expense(state, expense_type, expense_id)

    data = current.model_dump()
    data.update({key: value for key, value in changes.items() if value is not None})
    data["id"] = current.id

    try:
        updated = EXPENSE_MODELS[expense_type].model_validate(
            data,
            context={"display_currency": current.currency},
        )
    except ValidationError as e:
        raise InvalidExpenseError(_validation_message(e)) from e

    field = EXPENSE_FIELDS[expense_type]
    expenses = [updated if e.id == expense_id else e for e in getattr(state, field)]
    return state.model_copy(update={field: expenses})


def _usage_without_expense(
    usage: UsageCosts,
    expense_type: ExpenseType,
    expense_id: str,
) -> UsageCosts:
    field = _USAGE_FIELDS[expense_type]

    if not expense_type.is_daily:
        assignments = {
            key: ids for key, ids in getattr(usage, field).items() if key != expense_id
        }
        return usage.model_copy(update={field: assignments})

    days = {}
    for day, daily in usage.days.items():
        assignments = {
            key: ids for key, ids in getattr(daily, field).items() if key != expense_id
        }
        trimmed = daily.model_copy(update={field: assignments})
        if not trimmed.is_empty:
            days[day] = trimmed
    return usage.model_copy(update={"days": days})


def remove_expense(state: TripState, expense_id: str, expense_type: ExpenseType) -> TripState:
    """Remove an expense and all usage assigned to it."""
    _require_expense(state, expense_type, expense_id)

    field = EXPENSE_FIELDS[expense_type]
    return state.model_copy(update={
        field: [e for e in getattr(state, field) if e.id != expense_id],
        "usage_costs": _usage_without_expense(state.usage_costs, expense_type, expense_id),
    })


# =============================================================================
# USAGE
# =============================================================================

def _with_daily_assignment(
    usage: UsageCosts,
    day: str,
    expense_type: ExpenseType,
    expense_id: str,
    traveler_ids: list[str],
) -> UsageCosts:
    field = _USAGE_FIELDS[expense_type]
    daily = usage.days.get(day) or DailyUsage()

    assignments = dict(getattr(daily, field))
    if traveler_ids:
        assignments[expense_id] = traveler_ids
    else:
        assignments.pop(expense_id, None)

    updated = daily.model_copy(update={field: assignments})
    days = dict(usage.days)
    if updated.is_empty:
        days.pop(day, None)
    else:
        days[day] = updated
    return usage.model_copy(update={"days": days})


def _with_one_time_assignment(
    usage: UsageCosts,
    expense_type: ExpenseType,
    expense_id: str,
    traveler_ids: list[str],
) -> UsageCosts:
    field = _USAGE_FIELDS[expense_type]
    assignments = dict(getattr(usage, field))
    if traveler_ids:
        assignments[expense_id] = traveler_ids
    else:
        assignments.pop(expense_id, None)
    return usage.model_copy(update={field: assignments})


def set_daily_usage(
    state: TripState,
    expense_type: ExpenseType,
    day: str,
    expense_id: str,
    traveler_ids: Iterable[str],
) -> TripState:
    """
    Replace who uses a daily expense on one day.

    An empty traveler list clears the assignment.
    """
    if not expense_type.is_daily:
        raise TripStateUpdateError(f"{expense_type.value} is not a daily expense type")
    if not is_iso_day(day):
        raise TripStateUpdateError(f"Invalid day {day!r}; use YYYY-MM-DD")
    _require_expense(state, expense_type, expense_id)
    ids = _require_travelers(state, traveler_ids)

    usage = _with_daily_assignment(state.usage_costs, day, expense_type, expense_id, ids)
    return state.model_copy(update={"usage_costs": usage})


def set_one_time_usage(
    state: TripState,
    expense_type: ExpenseType,
    expense_id: str,
    traveler_ids: Iterable[str],
) -> TripState:
    """Replace who shares (or individually incurs) a one-time expense."""
    if expense_type.is_daily:
        raise TripStateUpdateError(f"{expense_type.value} is not a one-time expense type")
    _require_expense(state, expense_type, expense_id)
    ids = _require_travelers(state, traveler_ids)

    usage = _with_one_time_assignment(state.usage_costs, expense_type, expense_id, ids)
    return state.model_copy(update={"usage_costs": usage})


def _toggled(ids: list[str], traveler_id: str) -> list[str]:
    if traveler_id in ids:
        return [existing for existing in ids if existing != traveler_id]
    return [*ids, traveler_id]


def toggle_daily_usage(
    state: TripState,
    expense_type: ExpenseType,
    day: str,
    expense_id: str,
    traveler_id: str,
) -> TripState:
    """Add the traveler to the day's assignment, or remove them if present."""
    if not expense_type.is_daily:
        raise TripStateUpdateError(f"{expense_type.value} is not a daily expense type")
    daily = state.usage_costs.days.get(day) or DailyUsage()
    current = daily.assignments(expense_type).get(expense_id, [])
    return set_daily_usage(state, expense_type, day, expense_id, _toggled(current, traveler_id))


def toggle_one_time_usage(
    state: TripState,
    expense_type: ExpenseType,
    expense_id: str,
    traveler_id: str,
) -> TripState:
    """Add the traveler to a one-time expense, or remove them if present."""
    if expense_type.is_daily:
        raise TripStateUpdateError(f"{expense_type.value} is not a one-time expense type")
    current = state.usage_costs.one_time_assignments(expense_type).get(expense_id, [])
    return set_one_time_usage(state, expense_type, expense_id, _toggled(current, traveler_id))


# =============================================================================
# TRIP DATES
# =============================================================================

def _clamp_expenses(
    expenses: list[DatedExpense],
    start_date: str,
    end_date: str,
) -> tuple[list[DatedExpense], list[str]]:
    kept = []
    removed_ids = []
    for expense in expenses:
        new_start = max(expense.start_date, start_date)
        new_end = min(expense.end_date, end_date)
        if new_start >= new_end:
            removed_ids.append(expense.id)
            continue
        kept.append(expense.model_copy(update={"start_date": new_start, "end_date": new_end}))
    return kept, removed_ids


def update_trip_dates(state: TripState, start_date: str, end_date: str) -> TripState:
    """
    Set the trip span [start_date, end_date).

    Usage on days outside the span is dropped, dated expenses are clamped
    into it, and dated expenses lying entirely outside it are removed
    together with their usage.
    """
    if not is_iso_day(start_date) or not is_iso_day(end_date):
        raise TripStateUpdateError("Trip dates must be ISO dates (YYYY-MM-DD)")
    if end_date <= start_date:
        raise TripStateUpdateError("Trip end date must be after its start date")

    usage = state.usage_costs.model_copy(update={
        "days": {
            day: daily
            for day, daily in state.usage_costs.days.items()
            if start_date <= day < end_date
        },
    })

    shared, removed_shared = _clamp_expenses(state.daily_shared_expenses, start_date, end_date)
    personal, removed_personal = _clamp_expenses(
        state.daily_personal_expenses, start_date, end_date
    )

    for expense_id in removed_shared:
        usage = _usage_without_expense(usage, ExpenseType.DAILY_SHARED, expense_id)
    for expense_id in removed_personal:
        usage = _usage_without_expense(usage, ExpenseType.DAILY_PERSONAL, expense_id)

    return state.model_copy(update={
        "start_date": start_date,
        "end_date": end_date,
        "daily_shared_expenses": shared,
        "daily_personal_expenses": personal,
        "usage_costs": usage,
    })
