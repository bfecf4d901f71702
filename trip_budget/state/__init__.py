"""Trip state update package."""

from trip_budget.state.updates import (
    DuplicateTravelerNameError,
    ExpenseNotFoundError,
    InvalidExpenseError,
    InvalidTravelerError,
    TravelerNotFoundError,
    TripStateUpdateError,
    add_expense,
    add_traveler,
    create_expense,
    find_expense,
    find_traveler,
    generate_id,
    get_expense_list,
    remove_expense,
    remove_traveler,
    rename_traveler,
    set_daily_usage,
    set_one_time_usage,
    sort_travelers,
    toggle_daily_usage,
    toggle_one_time_usage,
    update_expense,
    update_trip_dates,
)

__all__ = [
    # Errors
    "TripStateUpdateError",
    "TravelerNotFoundError",
    "DuplicateTravelerNameError",
    "InvalidTravelerError",
    "ExpenseNotFoundError",
    "InvalidExpenseError",
    # Lookups
    "find_expense",
    "find_traveler",
    "generate_id",
    "get_expense_list",
    "sort_travelers",
    # Updates
    "add_expense",
    "add_traveler",
    "create_expense",
    "remove_expense",
    "remove_traveler",
    "rename_traveler",
    "set_daily_usage",
    "set_one_time_usage",
    "toggle_daily_usage",
    "toggle_one_time_usage",
    "update_expense",
    "update_trip_dates",
]
