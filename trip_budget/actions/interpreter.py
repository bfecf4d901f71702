"""
Assistant Action Interpreter

Turns an assistant reply into trip edits.

Two stages:
1. parse_ai_response: raw payload -> typed actions (invalid ones skipped)
2. apply_actions: typed actions -> new TripState, one action at a time

GUARANTEES:
- Neither stage raises for bad input; problems come back as error strings
- A failed action leaves the state exactly as the previous action left it
- Travelers and expenses are resolved by id, or else by a case-insensitive
  name that matches exactly one entry
"""

import json
from typing import Any, Callable, Optional, Sequence

import structlog
from pydantic import TypeAdapter, ValidationError

from trip_budget.models.actions import (
    AddExpense,
    AddTraveler,
    AiAction,
    AiParseResult,
    AiResponse,
    ApplyResult,
    RemoveExpense,
    RemoveTraveler,
    RenameTraveler,
    SetUsageDaily,
    SetUsageOneTime,
    UpdateExpense,
    UsageAssignment,
)
from trip_budget.models.trip import Expense, ExpenseType, TripState, is_iso_day
from trip_budget.state.updates import (
    ExpenseNotFoundError,
    InvalidExpenseError,
    TravelerNotFoundError,
    TripStateUpdateError,
    add_expense,
    add_traveler,
    create_expense,
    find_expense,
    find_traveler,
    remove_expense,
    remove_traveler,
    rename_traveler,
    set_daily_usage,
    set_one_time_usage,
    update_expense,
)


logger = structlog.get_logger(__name__)

_ACTION_ADAPTER = TypeAdapter(AiAction)

# Fields each category needs before an expense can be created
_REQUIRED_FIELDS: dict[ExpenseType, tuple[str, ...]] = {
    ExpenseType.DAILY_SHARED: ("total_cost", "start_date", "end_date"),
    ExpenseType.DAILY_PERSONAL: ("daily_cost", "start_date", "end_date"),
    ExpenseType.ONE_TIME_SHARED: ("total_cost",),
    ExpenseType.ONE_TIME_PERSONAL: ("total_cost",),
}

_MISSING_FIELD_MESSAGES: dict[ExpenseType, str] = {
    ExpenseType.DAILY_SHARED: "daily shared expenses need totalCost, startDate, and endDate.",
    ExpenseType.DAILY_PERSONAL: "daily personal expenses need dailyCost, startDate, and endDate.",
    ExpenseType.ONE_TIME_SHARED: "one-time shared expenses need totalCost.",
    ExpenseType.ONE_TIME_PERSONAL: "one-time personal expenses need totalCost.",
}


# =============================================================================
# PARSING
# =============================================================================

def parse_ai_response(value: Any) -> AiParseResult:
    """
    Validate an assistant payload (a dict, or its JSON text).

    Invalid actions are skipped with an "Action N is invalid" error.
    When no action survives, response is None.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return AiParseResult(errors=["Response is not valid JSON."])

    if not isinstance(value, dict):
        return AiParseResult(errors=["Response is not an object."])

    raw_actions = value.get("actions")
    if not isinstance(raw_actions, list):
        return AiParseResult(errors=["Response missing actions array."])

    actions = []
    errors = []
    for index, raw_action in enumerate(raw_actions, start=1):
        try:
            actions.append(_ACTION_ADAPTER.validate_python(raw_action))
        except ValidationError as e:
            logger.debug("ai_action_invalid", index=index, error_count=e.error_count())
            errors.append(f"Action {index} is invalid and was ignored.")

    if not actions:
        return AiParseResult(errors=errors or ["No valid actions found."])

    response = AiResponse(
        actions=actions,
        explanation=value.get("explanation"),
        warnings=value.get("warnings"),
    )
    return AiParseResult(response=response, errors=errors)


# =============================================================================
# APPLYING
# =============================================================================

def _resolve_traveler_ids(state: TripState, action: UsageAssignment) -> list[str]:
    """Union of known ids and uniquely-resolving names, first-seen order."""
    ids: dict[str, None] = {}
    for traveler_id in action.traveler_ids or []:
        if traveler_id in state.traveler_ids:
            ids[traveler_id] = None
    for name in action.traveler_names or []:
        traveler = find_traveler(state, traveler_name=name)
        if traveler is not None:
            ids[traveler.id] = None
    return list(ids)


def _resolve_expense(state: TripState, action: Any) -> Expense:
    expense = find_expense(state, action.expense_type, action.expense_id, action.expense_name)
    if expense is None:
        raise ExpenseNotFoundError("expense not found.")
    return expense


def _apply_add_traveler(state: TripState, action: AddTraveler) -> TripState:
    name = action.name.strip()
    if not name:
        raise TripStateUpdateError("traveler name is required.")
    return add_traveler(state, name)


def _apply_rename_traveler(state: TripState, action: RenameTraveler) -> TripState:
    new_name = action.new_name.strip()
    if not new_name:
        raise TripStateUpdateError("new traveler name is required.")
    traveler = find_traveler(state, action.traveler_id, action.traveler_name)
    if traveler is None:
        raise TravelerNotFoundError("traveler not found.")
    return rename_traveler(state, traveler.id, new_name)


def _apply_remove_traveler(state: TripState, action: RemoveTraveler) -> TripState:
    traveler = find_traveler(state, action.traveler_id, action.traveler_name)
    if traveler is None:
        raise TravelerNotFoundError("traveler not found.")
    return remove_traveler(state, traveler.id)


def _apply_add_expense(state: TripState, action: AddExpense) -> TripState:
    name = action.name.strip()
    if not name:
        raise InvalidExpenseError("expense name is required.")

    for field in _REQUIRED_FIELDS[action.expense_type]:
        value = getattr(action, field)
        if value is None or (field.endswith("_date") and not is_iso_day(value)):
            raise InvalidExpenseError(_MISSING_FIELD_MESSAGES[action.expense_type])

    expense = create_expense(
        state,
        action.expense_type,
        name=name,
        currency=action.currency,
        total_cost=action.total_cost,
        daily_cost=action.daily_cost,
        start_date=action.start_date,
        end_date=action.end_date,
        split_mode=action.split_mode,
    )
    return add_expense(state, action.expense_type, expense)


def _apply_update_expense(state: TripState, action: UpdateExpense) -> TripState:
    expense = _resolve_expense(state, action)
    return update_expense(
        state,
        action.expense_type,
        expense.id,
        name=(action.name.strip() or None) if action.name else None,
        currency=action.currency or None,
        total_cost=action.total_cost,
        daily_cost=action.daily_cost,
        start_date=action.start_date if is_iso_day(action.start_date) else None,
        end_date=action.end_date if is_iso_day(action.end_date) else None,
        split_mode=action.split_mode,
    )


def _apply_remove_expense(state: TripState, action: RemoveExpense) -> TripState:
    expense = _resolve_expense(state, action)
    return remove_expense(state, expense.id, action.expense_type)


def _apply_set_usage_daily(state: TripState, action: SetUsageDaily) -> TripState:
    if not is_iso_day(action.date):
        raise TripStateUpdateError("invalid date format. Use YYYY-MM-DD.")
    expense = _resolve_expense(state, action)
    traveler_ids = _resolve_traveler_ids(state, action)
    if not traveler_ids:
        raise TravelerNotFoundError("no travelers matched.")
    return set_daily_usage(state, action.expense_type, action.date, expense.id, traveler_ids)


def _apply_set_usage_one_time(state: TripState, action: SetUsageOneTime) -> TripState:
    expense = _resolve_expense(state, action)
    traveler_ids = _resolve_traveler_ids(state, action)
    if not traveler_ids:
        raise TravelerNotFoundError("no travelers matched.")
    return set_one_time_usage(state, action.expense_type, expense.id, traveler_ids)


_HANDLERS: dict[type, Callable[[TripState, Any], TripState]] = {
    AddTraveler: _apply_add_traveler,
    RenameTraveler: _apply_rename_traveler,
    RemoveTraveler: _apply_remove_traveler,
    AddExpense: _apply_add_expense,
    UpdateExpense: _apply_update_expense,
    RemoveExpense: _apply_remove_expense,
    SetUsageDaily: _apply_set_usage_daily,
    SetUsageOneTime: _apply_set_usage_one_time,
}


def apply_actions(state: TripState, actions: Sequence[AiAction]) -> ApplyResult:
    """
    Apply actions in order, collecting one error per failed action.

    Each action sees the state produced by the actions before it.
    """
    next_state = state
    applied = []
    errors = []

    for index, action in enumerate(actions, start=1):
        handler = _HANDLERS.get(type(action))
        if handler is None:
            errors.append(f"Action {index}: unsupported action.")
            continue
        try:
            next_state = handler(next_state, action)
        except TripStateUpdateError as e:
            errors.append(f"Action {index}: {e}")
            continue
        applied.append(action)

    if errors:
        logger.info("ai_actions_partially_applied", applied=len(applied), failed=len(errors))

    return ApplyResult(next_state=next_state, applied=applied, errors=errors)


# =============================================================================
# DESCRIBING
# =============================================================================

def describe_action(action: AiAction, state: Optional[TripState] = None) -> str:
    """
    Human-readable one-line label, e.g. "Add traveler: Ana".

    With a state, usage actions show the resolved expense name.
    """
    if isinstance(action, AddTraveler):
        return f"Add traveler: {action.name}"
    if isinstance(action, RenameTraveler):
        return f"Rename traveler: {action.traveler_label} -> {action.new_name}"
    if isinstance(action, RemoveTraveler):
        return f"Remove traveler: {action.traveler_label}"
    if isinstance(action, AddExpense):
        return f"Add {action.expense_type.value} expense: {action.name}"
    if isinstance(action, UpdateExpense):
        return f"Update {action.expense_type.value} expense: {action.expense_label}"
    if isinstance(action, RemoveExpense):
        return f"Remove {action.expense_type.value} expense: {action.expense_label}"

    if isinstance(action, (SetUsageDaily, SetUsageOneTime)):
        expense = None
        if state is not None:
            expense = find_expense(
                state, action.expense_type, action.expense_id, action.expense_name
            )
        label = expense.name if expense is not None else action.expense_label
        if isinstance(action, SetUsageDaily):
            return f"Set {action.expense_type.value} usage on {action.date}: {label}"
        return f"Set {action.expense_type.value} usage: {label}"

    return "Unknown action"
