"""
Data Models Package

This package contains all Pydantic models used in the Trip Budget system.
All data flowing through the system must conform to these schemas.
"""

from trip_budget.models.trip import (
    DailyPersonalExpense,
    DailySharedExpense,
    DailyUsage,
    DatedExpense,
    Expense,
    ExpenseBase,
    ExpenseType,
    OneTimePersonalExpense,
    OneTimeSharedExpense,
    SplitMode,
    Traveler,
    TripState,
    UsageCosts,
    TRIP_STATE_VERSION,
)
from trip_budget.models.budget import (
    BudgetSummary,
    CategoryTotals,
    CostSplit,
    CurrencyTotal,
    TravelerCostBreakdown,
)
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
)
from trip_budget.models.review import ValidationIssue, ValidationResult
from trip_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Trip state models
    "DailyPersonalExpense",
    "DailySharedExpense",
    "DailyUsage",
    "DatedExpense",
    "Expense",
    "ExpenseBase",
    "ExpenseType",
    "OneTimePersonalExpense",
    "OneTimeSharedExpense",
    "SplitMode",
    "Traveler",
    "TripState",
    "UsageCosts",
    "TRIP_STATE_VERSION",
    # Budget models
    "BudgetSummary",
    "CategoryTotals",
    "CostSplit",
    "CurrencyTotal",
    "TravelerCostBreakdown",
    # Action models
    "AddExpense",
    "AddTraveler",
    "AiAction",
    "AiParseResult",
    "AiResponse",
    "ApplyResult",
    "RemoveExpense",
    "RemoveTraveler",
    "RenameTraveler",
    "SetUsageDaily",
    "SetUsageOneTime",
    "UpdateExpense",
    # Review models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
