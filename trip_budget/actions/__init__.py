"""Assistant action interpretation package."""

from trip_budget.actions.interpreter import (
    apply_actions,
    describe_action,
    parse_ai_response,
)

__all__ = [
    "apply_actions",
    "describe_action",
    "parse_ai_response",
]
