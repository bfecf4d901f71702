"""Trip review package."""

from trip_budget.validation.validator import TripStateValidator, get_user_friendly_summary

__all__ = ["TripStateValidator", "get_user_friendly_summary"]
