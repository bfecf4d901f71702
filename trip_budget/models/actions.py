"""
Assistant Action Models

An assistant (LLM) proposes edits to a trip as a list of typed actions.
These models are the contract for that payload.

DESIGN DECISION: Lenient on optional fields, strict on required ones.
Model output is noisy. A wrong-typed OPTIONAL field (a cost given as a
string, an unknown split mode) is dropped to None and the action still
parses. A missing or wrong-typed REQUIRED field makes the whole action
invalid, and the parser skips it with an error.

CRITICAL: Parsing never touches the trip. Actions only take effect
through the interpreter, one at a time, each with its own error.
"""

import math
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from trip_budget.models.trip import TRAVELER_NAME_MAX_LENGTH, ExpenseType, SplitMode, TripState


def _optional_string(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None


def _optional_number(v: Any) -> Optional[float]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return v if math.isfinite(v) else None


def _optional_string_list(v: Any) -> Optional[list[str]]:
    if not isinstance(v, list):
        return None
    return [item for item in v if isinstance(item, str)]


class ActionModel(BaseModel):
    """Base for action payload models: camelCase aliases, frozen."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# =============================================================================
# TRAVELER ACTIONS
# =============================================================================

class TravelerReference(ActionModel):
    """Targets a traveler by id, or else by unique name."""

    traveler_id: Optional[str] = None
    traveler_name: Optional[str] = None

    @field_validator('traveler_id', 'traveler_name', mode='before')
    @classmethod
    def drop_non_string_traveler(cls, v: Any) -> Optional[str]:
        return _optional_string(v)

    @property
    def traveler_label(self) -> str:
        return self.traveler_name or self.traveler_id or "Unknown"


class AddTraveler(ActionModel):
    type: Literal["addTraveler"] = "addTraveler"
    name: str = Field(..., strict=True, max_length=TRAVELER_NAME_MAX_LENGTH)


class RenameTraveler(TravelerReference):
    type: Literal["renameTraveler"] = "renameTraveler"
    new_name: str = Field(..., strict=True, max_length=TRAVELER_NAME_MAX_LENGTH)


class RemoveTraveler(TravelerReference):
    type: Literal["removeTraveler"] = "removeTraveler"


# =============================================================================
# EXPENSE ACTIONS
# =============================================================================

class ExpenseReference(ActionModel):
    """Targets an expense of one category by id, or else by unique name."""

    expense_type: ExpenseType
    expense_id: Optional[str] = None
    expense_name: Optional[str] = None

    @field_validator('expense_id', 'expense_name', mode='before')
    @classmethod
    def drop_non_string_expense(cls, v: Any) -> Optional[str]:
        return _optional_string(v)

    @property
    def expense_label(self) -> str:
        return self.expense_name or self.expense_id or "Unknown"


class ExpenseFields(ActionModel):
    """Optional expense attributes shared by add and update."""

    currency: Optional[str] = None
    total_cost: Optional[float] = None
    daily_cost: Optional[float] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    split_mode: Optional[SplitMode] = None

    @field_validator('currency', 'start_date', 'end_date', mode='before')
    @classmethod
    def drop_non_string_fields(cls, v: Any) -> Optional[str]:
        return _optional_string(v)

    @field_validator('total_cost', 'daily_cost', mode='before')
    @classmethod
    def drop_non_numbers(cls, v: Any) -> Optional[float]:
        return _optional_number(v)

    @field_validator('split_mode', mode='before')
    @classmethod
    def drop_unknown_split_mode(cls, v: Any) -> Optional[SplitMode]:
        if isinstance(v, str) and v in {mode.value for mode in SplitMode}:
            return SplitMode(v)
        return None


class AddExpense(ExpenseFields):
    type: Literal["addExpense"] = "addExpense"
    expense_type: ExpenseType
    name: str = Field(..., strict=True)


class UpdateExpense(ExpenseReference, ExpenseFields):
    type: Literal["updateExpense"] = "updateExpense"
    name: Optional[str] = None

    @field_validator('name', mode='before')
    @classmethod
    def drop_non_string_name(cls, v: Any) -> Optional[str]:
        return _optional_string(v)


class RemoveExpense(ExpenseReference):
    type: Literal["removeExpense"] = "removeExpense"


# =============================================================================
# USAGE ACTIONS
# =============================================================================

class UsageAssignment(ExpenseReference):
    """Who to assign: traveler ids and/or names, unioned."""

    traveler_ids: Optional[list[str]] = None
    traveler_names: Optional[list[str]] = None

    @field_validator('traveler_ids', 'traveler_names', mode='before')
    @classmethod
    def keep_strings(cls, v: Any) -> Optional[list[str]]:
        return _optional_string_list(v)


class SetUsageDaily(UsageAssignment):
    type: Literal["setUsageDaily"] = "setUsageDaily"
    date: str = Field(..., strict=True)

    @field_validator('expense_type')
    @classmethod
    def require_daily_type(cls, v: ExpenseType) -> ExpenseType:
        if not v.is_daily:
            raise ValueError("setUsageDaily needs a daily expense type")
        return v


class SetUsageOneTime(UsageAssignment):
    type: Literal["setUsageOneTime"] = "setUsageOneTime"

    @field_validator('expense_type')
    @classmethod
    def require_one_time_type(cls, v: ExpenseType) -> ExpenseType:
        if v.is_daily:
            raise ValueError("setUsageOneTime needs a one-time expense type")
        return v


AiAction = Annotated[
    Union[
        AddTraveler,
        RenameTraveler,
        RemoveTraveler,
        AddExpense,
        UpdateExpense,
        RemoveExpense,
        SetUsageDaily,
        SetUsageOneTime,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# RESULTS
# =============================================================================

class AiResponse(ActionModel):
    """A parsed assistant reply: the valid actions plus optional commentary."""

    actions: list[AiAction] = Field(..., min_length=1)
    explanation: Optional[str] = None
    warnings: Optional[list[str]] = None

    @field_validator('explanation', mode='before')
    @classmethod
    def drop_non_string_explanation(cls, v: Any) -> Optional[str]:
        return _optional_string(v)

    @field_validator('warnings', mode='before')
    @classmethod
    def keep_string_warnings(cls, v: Any) -> Optional[list[str]]:
        return _optional_string_list(v)


class AiParseResult(BaseModel):
    """Outcome of parsing: response is None when no action was valid."""

    response: Optional[AiResponse] = None
    errors: list[str] = Field(default_factory=list)


class ApplyResult(BaseModel):
    """
    Outcome of applying actions in order.

    next_state reflects every applied action; failed actions are skipped
    and described in errors.
    """

    next_state: TripState
    applied: list[AiAction] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
