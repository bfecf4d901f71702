"""
Two-Stage Trip Review

DESIGN DECISION: Review happens in two distinct stages:

STAGE 1 - STRUCTURAL VALIDATION:
- Schema version is current
- Traveler ids and names are unique
- Usage only references travelers on the roster
- Dated expenses have a non-empty range
This catches documents that skipped migration or were edited by hand.

STAGE 2 - SEMANTIC VALIDATION:
- Usage for expenses that no longer exist
- Daily usage outside an expense's date range
- Daily-occupancy days nobody is assigned to (that cost is dropped)
- Expenses nobody is assigned to (unallocated)
- Foreign-currency expenses (totals become approximate)
This catches trips that calculate fine but not the way the user expects.

Stage 2 only runs when stage 1 passes.

IMPORTANT: Review NEVER fixes anything. It reports for the user to decide.
"""

from collections import Counter
from typing import Optional

from trip_budget.engine.dates import enumerate_days
from trip_budget.models.review import ValidationIssue, ValidationResult
from trip_budget.models.trip import (
    TRIP_STATE_VERSION,
    DailySharedExpense,
    ExpenseType,
    SplitMode,
    TripState,
)


class TripStateValidator:
    """
    Reviews a trip through a two-stage pipeline.

    Stage 1: Structural validation (errors)
    Stage 2: Semantic validation (warnings and info)
    """

    def _validate_structure(
        self,
        state: TripState,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Structural validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if state.version != TRIP_STATE_VERSION:
            issues.append(ValidationIssue(
                field="version",
                issue_type="stale_version",
                message=f"Trip uses schema version {state.version}, expected {TRIP_STATE_VERSION}",
                severity="error",
                suggested_fix="Load the trip through migration before calculating",
            ))

        id_counts = Counter(traveler.id for traveler in state.travelers)
        for traveler_id, count in sorted(id_counts.items()):
            if count > 1:
                issues.append(ValidationIssue(
                    field="travelers",
                    issue_type="duplicate_id",
                    message=f"Traveler id {traveler_id!r} is used {count} times",
                    severity="error",
                    suggested_fix="Remove the duplicate traveler",
                ))

        name_counts = Counter(traveler.name_key for traveler in state.travelers)
        for traveler in state.travelers:
            if name_counts[traveler.name_key] > 1:
                issues.append(ValidationIssue(
                    field="travelers",
                    issue_type="duplicate_name",
                    message=f"More than one traveler is named {traveler.name!r}",
                    severity="error",
                    suggested_fix="Rename one of the travelers",
                ))
                # Report each name once
                name_counts[traveler.name_key] = 0

        dangling = state.usage_costs.referenced_traveler_ids() - state.traveler_ids
        if dangling:
            issues.append(ValidationIssue(
                field="usageCosts",
                issue_type="dangling_reference",
                message=f"Usage references unknown travelers: {', '.join(sorted(dangling))}",
                severity="error",
                suggested_fix="Load the trip through migration to prune stale usage",
            ))

        for expense_type in ExpenseType:
            expense_counts = Counter(e.id for e in state.expenses_of(expense_type))
            for expense_id, count in sorted(expense_counts.items()):
                if count > 1:
                    issues.append(ValidationIssue(
                        field=expense_type.value,
                        issue_type="duplicate_id",
                        message=f"Expense id {expense_id!r} is used {count} times",
                        severity="error",
                        suggested_fix="Remove the duplicate expense",
                    ))

        for expense in state.dated_expenses:
            if expense.end_date <= expense.start_date:
                issues.append(ValidationIssue(
                    field=f"expenses.{expense.id}",
                    issue_type="invalid_range",
                    message=(
                        f"'{expense.name}' ends ({expense.end_date}) on or before "
                        f"it starts ({expense.start_date})"
                    ),
                    severity="error",
                    suggested_fix="Set an end date after the start date",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        state: TripState,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        issues.extend(self._check_unknown_expenses(state))
        issues.extend(self._check_usage_outside_range(state))
        issues.extend(self._check_unallocated(state))
        issues.extend(self._check_currencies(state))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _check_unknown_expenses(self, state: TripState) -> list[ValidationIssue]:
        issues = []
        usage = state.usage_costs

        for expense_type in (ExpenseType.ONE_TIME_SHARED, ExpenseType.ONE_TIME_PERSONAL):
            known = {e.id for e in state.expenses_of(expense_type)}
            for expense_id in usage.one_time_assignments(expense_type):
                if expense_id not in known:
                    issues.append(self._unknown_expense_issue(
                        f"usageCosts.{expense_type.value}", expense_id
                    ))

        for expense_type in (ExpenseType.DAILY_SHARED, ExpenseType.DAILY_PERSONAL):
            known = {e.id for e in state.expenses_of(expense_type)}
            for day in sorted(usage.days):
                for expense_id in usage.days[day].assignments(expense_type):
                    if expense_id not in known:
                        issues.append(self._unknown_expense_issue(
                            f"usageCosts.days.{day}", expense_id
                        ))

        return issues

    @staticmethod
    def _unknown_expense_issue(field: str, expense_id: str) -> ValidationIssue:
        return ValidationIssue(
            field=field,
            issue_type="unknown_expense",
            message=f"Usage refers to expense {expense_id!r}, which does not exist; it is ignored",
            severity="warning",
            suggested_fix="Load the trip through migration to prune stale usage",
        )

    def _check_usage_outside_range(self, state: TripState) -> list[ValidationIssue]:
        issues = []
        days = state.usage_costs.days

        for expense_type in (ExpenseType.DAILY_SHARED, ExpenseType.DAILY_PERSONAL):
            for expense in state.expenses_of(expense_type):
                outside = sorted(
                    day for day, daily in days.items()
                    if daily.assignments(expense_type).get(expense.id) and not expense.covers(day)
                )
                if not outside:
                    continue
                # Shared splits only look inside the range; personal rates charge every assigned day
                effect = (
                    "those days are not charged"
                    if expense_type == ExpenseType.DAILY_SHARED
                    else "those days are still charged"
                )
                issues.append(ValidationIssue(
                    field=f"expenses.{expense.id}",
                    issue_type="outside_range",
                    message=(
                        f"'{expense.name}' is assigned on {len(outside)} day(s) outside "
                        f"{expense.start_date}..{expense.end_date}; {effect}"
                    ),
                    severity="warning",
                    suggested_fix="Adjust the expense dates or the daily assignments",
                ))

        return issues

    def _check_unallocated(self, state: TripState) -> list[ValidationIssue]:
        issues = []
        usage = state.usage_costs

        for expense in state.daily_shared_expenses:
            issue = self._check_daily_shared_coverage(state, expense)
            if issue is not None:
                issues.append(issue)

        for expense_type in (ExpenseType.ONE_TIME_SHARED, ExpenseType.ONE_TIME_PERSONAL):
            assignments = usage.one_time_assignments(expense_type)
            for expense in state.expenses_of(expense_type):
                if not assignments.get(expense.id):
                    issues.append(ValidationIssue(
                        field=f"expenses.{expense.id}",
                        issue_type="unallocated_cost",
                        message=f"Nobody is assigned to '{expense.name}'; it is not charged to anyone",
                        severity="warning",
                        suggested_fix="Assign the travelers who share this expense",
                    ))

        return issues

    def _check_daily_shared_coverage(
        self,
        state: TripState,
        expense: DailySharedExpense,
    ) -> Optional[ValidationIssue]:
        days = state.usage_costs.days
        range_days = enumerate_days(expense.start_date, expense.end_date)
        empty_days = [
            day for day in range_days
            if day not in days or not days[day].daily_shared.get(expense.id)
        ]

        if len(empty_days) == len(range_days):
            return ValidationIssue(
                field=f"expenses.{expense.id}",
                issue_type="unallocated_cost",
                message=f"Nobody is assigned to '{expense.name}' on any day; it is not charged to anyone",
                severity="warning",
                suggested_fix="Assign travelers to the days they stayed",
            )

        # Stay-weighted spreads the whole cost over the nights that were used
        if expense.split_mode == SplitMode.STAY_WEIGHTED or not empty_days:
            return None

        return ValidationIssue(
            field=f"expenses.{expense.id}",
            issue_type="unallocated_cost",
            message=(
                f"{len(empty_days)} of {len(range_days)} days of '{expense.name}' have "
                f"nobody assigned; the cost of those days is not charged to anyone"
            ),
            severity="warning",
            suggested_fix="Assign travelers to those days, or switch to stay-weighted splitting",
        )

    def _check_currencies(self, state: TripState) -> list[ValidationIssue]:
        foreign = sorted({
            expense.currency
            for _, expense in state.iter_expenses()
            if expense.currency != state.display_currency
        })
        if not foreign:
            return []
        return [ValidationIssue(
            field="displayCurrency",
            issue_type="approximate_total",
            message=(
                f"Amounts in {', '.join(foreign)} are converted to "
                f"{state.display_currency}; totals are approximate"
            ),
            severity="info",
        )]

    def validate(self, state: TripState) -> ValidationResult:
        """
        Run the full two-stage review.

        Args:
            state: The trip to review

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        # Stage 1: Structural validation
        structural_valid, structural_issues = self._validate_structure(state)
        all_issues.extend(structural_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if structural_valid:
            semantic_valid, semantic_issues = self._validate_semantic(state)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            structural_valid=structural_valid,
            semantic_valid=semantic_valid,
            is_valid=structural_valid and semantic_valid,
            can_calculate=structural_valid,
            issues=all_issues,
            warnings=warnings,
        )


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Generate a user-friendly summary of review results.

    This is what we show to non-technical users.
    """
    if result.is_valid and not result.warnings:
        return "✅ All checks passed! Your trip is ready to calculate."

    lines = []

    if not result.structural_valid:
        lines.append("❌ This trip has problems that must be fixed first:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        lines.append("")
        lines.append("⚠️ Please check the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    if result.can_calculate:
        lines.append("")
        lines.append("You can still calculate, but the totals may not be what you expect.")
    else:
        lines.append("")
        lines.append("Please fix the issues above before calculating.")

    return "\n".join(lines).strip("\n")
