"""
State Migration

DESIGN DECISION: Migration is the ONLY gate between untrusted documents
(imported files, decoded share links, stale local storage) and the engine.

It is a chain of total sanitizing functions:
- Never raises, whatever the input shape
- Drops malformed entries one at a time and keeps the rest
- Substitutes defaults for missing or invalid fields
- Prunes usage that points at travelers or expenses that do not exist
- Always stamps the current schema version

There is no error list for the caller: degrade, don't fail. A
MigrationReport with drop counts is available for logging and audit.
"""

from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from trip_budget.models.currency import DEFAULT_DISPLAY_CURRENCY, normalize_currency
from trip_budget.models.trip import (
    EXPENSE_FIELDS,
    EXPENSE_MODELS,
    TRIP_STATE_VERSION,
    DailyUsage,
    ExpenseBase,
    ExpenseType,
    Traveler,
    TripState,
    UsageCosts,
    dedupe_ids,
    is_iso_day,
)


logger = structlog.get_logger(__name__)

# Wire keys of the four catalogs in a raw document
_CATALOG_KEYS: dict[ExpenseType, str] = {
    ExpenseType.DAILY_SHARED: "dailySharedExpenses",
    ExpenseType.DAILY_PERSONAL: "dailyPersonalExpenses",
    ExpenseType.ONE_TIME_SHARED: "oneTimeSharedExpenses",
    ExpenseType.ONE_TIME_PERSONAL: "oneTimePersonalExpenses",
}


class MigrationReport(BaseModel):
    """What migration had to change to make a document valid."""

    source_version: Optional[int] = Field(
        default=None,
        description="Version found in the raw document, if any"
    )
    target_version: int = TRIP_STATE_VERSION
    dropped: dict[str, int] = Field(
        default_factory=dict,
        description="Malformed or duplicate entries dropped, by kind"
    )
    pruned_references: int = Field(
        default=0,
        ge=0,
        description="Usage references removed because their traveler or expense is gone"
    )

    @property
    def total_dropped(self) -> int:
        return sum(self.dropped.values())

    @property
    def changed(self) -> bool:
        return (
            self.source_version != self.target_version
            or self.total_dropped > 0
            or self.pruned_references > 0
        )

    def record_drop(self, kind: str) -> None:
        self.dropped[kind] = self.dropped.get(kind, 0) + 1


# =============================================================================
# PRIMITIVE SANITIZERS
# =============================================================================

def _is_record(value: Any) -> bool:
    return isinstance(value, dict)


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _to_id_list(value: Any) -> list[str]:
    """Non-empty strings from a list, de-duplicated; anything else -> []."""
    if not isinstance(value, list):
        return []
    return dedupe_ids([item for item in value if isinstance(item, str) and item])


def _sanitize_assignments(value: Any) -> dict[str, list[str]]:
    """expense id -> traveler ids, keeping only non-empty lists."""
    if not _is_record(value):
        return {}
    assignments = {}
    for expense_id, travelers in value.items():
        if not isinstance(expense_id, str) or not expense_id:
            continue
        ids = _to_id_list(travelers)
        if ids:
            assignments[expense_id] = ids
    return assignments


# =============================================================================
# ENTITY SANITIZERS
# =============================================================================

def sanitize_travelers(value: Any, report: Optional[MigrationReport] = None) -> list[Traveler]:
    """
    Valid travelers from a raw list.

    Later entries repeating an id or a (case-insensitive) name are dropped.
    """
    if report is None:
        report = MigrationReport()
    if not isinstance(value, list):
        return []

    travelers: list[Traveler] = []
    seen_ids: set[str] = set()
    seen_names: set[str] = set()

    for entry in value:
        try:
            traveler = Traveler.model_validate(entry)
        except ValidationError:
            report.record_drop("traveler")
            continue

        if traveler.id in seen_ids or traveler.name_key in seen_names:
            report.record_drop("traveler")
            continue

        seen_ids.add(traveler.id)
        seen_names.add(traveler.name_key)
        travelers.append(traveler)

    return travelers


def sanitize_expenses(
    value: Any,
    expense_type: ExpenseType,
    display_currency: str,
    report: Optional[MigrationReport] = None,
    trip_span: Optional[tuple[str, str]] = None,
) -> list[ExpenseBase]:
    """
    Valid expenses of one category from a raw list.

    Unsupported or missing currencies fall back to display_currency.
    Daily personal expenses saved before they carried their own dates
    inherit trip_span when one is known. Repeated ids are dropped.
    """
    if report is None:
        report = MigrationReport()
    if not isinstance(value, list):
        return []

    model = EXPENSE_MODELS[expense_type]
    context = {"display_currency": display_currency}
    expenses: list[ExpenseBase] = []
    seen_ids: set[str] = set()

    for entry in value:
        if (
            expense_type == ExpenseType.DAILY_PERSONAL
            and trip_span is not None
            and _is_record(entry)
            and "startDate" not in entry
            and "endDate" not in entry
        ):
            entry = {**entry, "startDate": trip_span[0], "endDate": trip_span[1]}

        try:
            expense = model.model_validate(entry, context=context)
        except ValidationError:
            report.record_drop(expense_type.value)
            continue

        if expense.id in seen_ids:
            report.record_drop(expense_type.value)
            continue

        seen_ids.add(expense.id)
        expenses.append(expense)

    return expenses


def sanitize_usage_costs(value: Any) -> UsageCosts:
    """Usage maps from a raw record; empty days and non-ISO day keys are left out."""
    if not _is_record(value):
        return UsageCosts()

    days = {}
    raw_days = value.get("days")
    if _is_record(raw_days):
        for day, daily in raw_days.items():
            if not is_iso_day(day) or not _is_record(daily):
                continue
            usage = DailyUsage(
                daily_shared=_sanitize_assignments(daily.get("dailyShared")),
                daily_personal=_sanitize_assignments(daily.get("dailyPersonal")),
            )
            if not usage.is_empty:
                days[day] = usage

    return UsageCosts(
        one_time_shared=_sanitize_assignments(value.get("oneTimeShared")),
        one_time_personal=_sanitize_assignments(value.get("oneTimePersonal")),
        days=days,
    )


# =============================================================================
# PRUNING
# =============================================================================

def _filter_assignments(
    assignments: dict[str, list[str]],
    traveler_ids: set[str],
    expense_ids: Optional[set[str]],
) -> dict[str, list[str]]:
    filtered = {}
    for expense_id, ids in assignments.items():
        if expense_ids is not None and expense_id not in expense_ids:
            continue
        kept = [traveler_id for traveler_id in ids if traveler_id in traveler_ids]
        if kept:
            filtered[expense_id] = kept
    return filtered


def prune_usage_to_travelers(
    usage: UsageCosts,
    traveler_ids: set[str],
    expense_ids: Optional[dict[ExpenseType, set[str]]] = None,
) -> UsageCosts:
    """
    Remove every reference to a traveler not in traveler_ids.

    When expense_ids is given, assignments for expenses missing from the
    matching catalog are removed too. Lists and days left empty disappear.
    """
    def known(expense_type: ExpenseType) -> Optional[set[str]]:
        return expense_ids.get(expense_type, set()) if expense_ids is not None else None

    days = {}
    for day, daily in usage.days.items():
        pruned = DailyUsage(
            daily_shared=_filter_assignments(
                daily.daily_shared, traveler_ids, known(ExpenseType.DAILY_SHARED)
            ),
            daily_personal=_filter_assignments(
                daily.daily_personal, traveler_ids, known(ExpenseType.DAILY_PERSONAL)
            ),
        )
        if not pruned.is_empty:
            days[day] = pruned

    return UsageCosts(
        one_time_shared=_filter_assignments(
            usage.one_time_shared, traveler_ids, known(ExpenseType.ONE_TIME_SHARED)
        ),
        one_time_personal=_filter_assignments(
            usage.one_time_personal, traveler_ids, known(ExpenseType.ONE_TIME_PERSONAL)
        ),
        days=days,
    )


def count_references(usage: UsageCosts) -> int:
    """Number of (expense, traveler) assignments, counting each day separately."""
    total = sum(len(ids) for ids in usage.one_time_shared.values())
    total += sum(len(ids) for ids in usage.one_time_personal.values())
    for daily in usage.days.values():
        total += sum(len(ids) for ids in daily.daily_shared.values())
        total += sum(len(ids) for ids in daily.daily_personal.values())
    return total


# =============================================================================
# ENTRY POINTS
# =============================================================================

def needs_migration(raw: Any) -> bool:
    """True unless raw is a record already stamped with the current version."""
    return not _is_record(raw) or _to_int(raw.get("version")) != TRIP_STATE_VERSION


def migrate_state_with_report(
    raw: Any,
    default_display_currency: str = DEFAULT_DISPLAY_CURRENCY,
) -> tuple[TripState, MigrationReport]:
    """
    Sanitize an arbitrary value into a valid TripState.

    Returns the state together with a report of what was dropped or pruned.
    """
    if not _is_record(raw):
        report = MigrationReport()
        if raw is not None:
            report.record_drop("document")
        return TripState(display_currency=default_display_currency), report

    report = MigrationReport(source_version=_to_int(raw.get("version")))

    display_currency = (
        normalize_currency(raw.get("displayCurrency"))
        or normalize_currency(default_display_currency)
        or DEFAULT_DISPLAY_CURRENCY
    )
    start_date = raw.get("startDate") if is_iso_day(raw.get("startDate")) else ""
    end_date = raw.get("endDate") if is_iso_day(raw.get("endDate")) else ""
    trip_span = (start_date, end_date) if start_date and end_date else None

    travelers = sanitize_travelers(raw.get("travelers"), report)

    catalogs = {
        expense_type: sanitize_expenses(
            raw.get(_CATALOG_KEYS[expense_type]),
            expense_type,
            display_currency,
            report,
            trip_span=trip_span,
        )
        for expense_type in ExpenseType
    }

    usage = sanitize_usage_costs(raw.get("usageCosts"))
    pruned = prune_usage_to_travelers(
        usage,
        {traveler.id for traveler in travelers},
        {
            expense_type: {expense.id for expense in expenses}
            for expense_type, expenses in catalogs.items()
        },
    )
    report.pruned_references = count_references(usage) - count_references(pruned)

    # Later schema versions chain their upgrade steps here, keyed on report.source_version.
    state = TripState(
        version=TRIP_STATE_VERSION,
        travelers=travelers,
        usage_costs=pruned,
        start_date=start_date,
        end_date=end_date,
        display_currency=display_currency,
        **{EXPENSE_FIELDS[expense_type]: expenses for expense_type, expenses in catalogs.items()},
    )

    if report.total_dropped or report.pruned_references:
        logger.warning(
            "trip_state_sanitized",
            source_version=report.source_version,
            dropped=report.dropped,
            pruned_references=report.pruned_references,
        )

    return state, report


def migrate_state(
    raw: Any,
    default_display_currency: str = DEFAULT_DISPLAY_CURRENCY,
) -> TripState:
    """
    Sanitize an arbitrary value into a valid TripState. Never raises.

    Equivalent to migrate_state_with_report(raw)[0].
    """
    state, _ = migrate_state_with_report(raw, default_display_currency)
    return state
