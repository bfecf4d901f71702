"""
Tests for Trip Budget models

Test strategy:
1. Unit tests for individual models (validation, aliases, immutability)
2. Flow tests live in test_orchestrator.py (with mocked external services)
3. No real API calls in tests (use httpx.MockTransport)
"""

import pytest
from uuid import uuid4

from pydantic import ValidationError

from trip_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from trip_budget.models.budget import BudgetSummary, CurrencyTotal, TravelerCostBreakdown
from trip_budget.models.review import ValidationIssue, ValidationResult
from trip_budget.models.trip import (
    DailyPersonalExpense,
    DailySharedExpense,
    ExpenseType,
    OneTimeSharedExpense,
    SplitMode,
    Traveler,
    TripState,
    UsageCosts,
    is_iso_day,
)


class TestTripModels:
    """Tests for trip-state Pydantic models."""

    def test_traveler_creation(self):
        """Test Traveler model creation and name stripping."""
        traveler = Traveler(id="a", name="  Ana  ")
        assert traveler.name == "Ana"
        assert traveler.name_key == "ana"

    def test_traveler_rejects_non_string_id(self):
        """Test that ids are not coerced from numbers."""
        with pytest.raises(ValidationError):
            Traveler(id=7, name="Ana")

    def test_models_are_frozen(self):
        """Test that trip models cannot be mutated in place."""
        traveler = Traveler(id="a", name="Ana")
        with pytest.raises(ValidationError):
            traveler.name = "Bo"

    def test_expense_accepts_camel_case(self):
        """Test that the wire shape (camelCase) validates."""
        expense = DailySharedExpense.model_validate({
            "id": "hotel",
            "name": "Hotel",
            "currency": "eur",
            "totalCost": 300,
            "startDate": "2024-01-01",
            "endDate": "2024-01-04",
        })
        assert expense.total_cost == 300.0
        assert expense.currency == "EUR"
        assert expense.split_mode == SplitMode.DAILY_OCCUPANCY

    def test_expense_rejects_string_amount(self):
        """Test that costs given as strings are malformed."""
        with pytest.raises(ValidationError):
            OneTimeSharedExpense(id="x", name="Taxi", currency="USD", total_cost="90")

    def test_expense_rejects_boolean_amount(self):
        """Test that booleans are not numbers here."""
        with pytest.raises(ValidationError):
            OneTimeSharedExpense(id="x", name="Taxi", currency="USD", total_cost=True)

    def test_expense_rejects_infinite_amount(self):
        """Test that non-finite costs are malformed."""
        with pytest.raises(ValidationError):
            OneTimeSharedExpense(id="x", name="Taxi", currency="USD", total_cost=float("inf"))

    def test_unsupported_currency_needs_context(self):
        """Test the display-currency fallback for unsupported codes."""
        with pytest.raises(ValidationError):
            OneTimeSharedExpense(id="x", name="Taxi", currency="XYZ", total_cost=1.0)

        expense = OneTimeSharedExpense.model_validate(
            {"id": "x", "name": "Taxi", "currency": "XYZ", "totalCost": 1},
            context={"display_currency": "GBP"},
        )
        assert expense.currency == "GBP"

    def test_dated_expense_range_validation(self):
        """Test that end date must come after start date."""
        with pytest.raises(ValidationError):
            DailyPersonalExpense(
                id="p", name="Pass", currency="USD", daily_cost=8.0,
                start_date="2024-01-04", end_date="2024-01-04",
            )

    def test_dated_expense_covers_half_open_range(self):
        """Test that the end date itself is not covered."""
        expense = DailyPersonalExpense(
            id="p", name="Pass", currency="USD", daily_cost=8.0,
            start_date="2024-01-01", end_date="2024-01-03",
        )
        assert expense.covers("2024-01-01")
        assert expense.covers("2024-01-02")
        assert not expense.covers("2024-01-03")

    def test_is_iso_day(self):
        """Test strict ISO day detection."""
        assert is_iso_day("2024-02-29")
        assert not is_iso_day("2023-02-29")
        assert not is_iso_day("2024-1-5")
        assert not is_iso_day(20240101)

    def test_usage_lists_are_deduplicated(self):
        """Test that repeated traveler ids collapse in order."""
        usage = UsageCosts(one_time_shared={"taxi": ["b", "a", "b"]})
        assert usage.one_time_shared["taxi"] == ["b", "a"]

    def test_trip_state_defaults(self):
        """Test an empty trip."""
        state = TripState()
        assert state.version == 1
        assert state.display_currency == "USD"
        assert state.travelers == []

    def test_trip_state_to_document(self, trip_state, raw_trip):
        """Test serialization back to the camelCase document."""
        document = trip_state.to_document()
        assert document["displayCurrency"] == "USD"
        assert document["usageCosts"]["days"]["2024-01-01"]["dailyShared"] == {"hotel": ["a", "b"]}
        assert document["dailySharedExpenses"][0]["splitMode"] == "dailyOccupancy"
        assert set(document) == set(raw_trip)


class TestBudgetModels:
    """Tests for engine result models."""

    def test_currency_total_is_sticky_approximate(self):
        """Test that approximation survives later exact additions."""
        total = CurrencyTotal()
        total.add(10.0, True)
        total.add(5.0, False)
        assert total.amount == 15.0
        assert total.is_approximate is True

    def test_currency_total_addition(self):
        """Test the + operator returns a new total."""
        left = CurrencyTotal(amount=1.5)
        right = CurrencyTotal(amount=2.0, is_approximate=True)
        combined = left + right
        assert combined.amount == 3.5
        assert combined.is_approximate is True
        assert left.amount == 1.5

    def test_breakdown_for_unknown_traveler(self):
        """Test that unknown ids get an all-zero breakdown."""
        summary = BudgetSummary(display_currency="USD")
        assert summary.breakdown_for("ghost") == TravelerCostBreakdown()


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RATES_FETCHED,
            description="Fetched rates",
        )
        assert event.event_type == AuditEventType.RATES_FETCHED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_CALCULATED,
            description="Budget calculated",
            details={"display_currency": "USD"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "budget_calculated"
        assert log_dict["details"]["display_currency"] == "USD"
        assert log_dict["correlation_id"] is None

    def test_audit_event_builder_state_migrated(self):
        """Test that dropping data raises the severity."""
        correlation_id = uuid4()

        clean = AuditEventBuilder.state_migrated(1, 1, {}, 0, correlation_id)
        lossy = AuditEventBuilder.state_migrated(None, 1, {"traveler": 2}, 3, correlation_id)

        assert clean.severity == AuditSeverity.INFO
        assert lossy.severity == AuditSeverity.WARNING
        assert lossy.correlation_id == correlation_id
        assert "2 entries dropped, 3 references pruned" in lossy.description

    def test_audit_event_builder_rate_missing(self):
        """Test AuditEventBuilder.rate_missing."""
        event = AuditEventBuilder.rate_missing(["EUR", "JPY"], "USD", uuid4())

        assert event.severity == AuditSeverity.ERROR
        assert event.error_code == "MISSING_RATE"
        assert event.details["currencies"] == ["EUR", "JPY"]

    def test_audit_event_builder_action_applied(self):
        """Test that assistant actions count as user actions."""
        event = AuditEventBuilder.action_applied("addTraveler", "Add traveler: Dee", uuid4())

        assert event.event_type == AuditEventType.ACTION_APPLIED
        assert event.is_user_action is True
        assert event.details["action_type"] == "addTraveler"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            structural_valid=False,
            semantic_valid=False,
            is_valid=False,
            can_calculate=False,
            issues=[
                ValidationIssue(
                    field="travelers",
                    issue_type="duplicate_id",
                    message="Traveler id 'a' is used 2 times",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            structural_valid=True,
            semantic_valid=True,
            is_valid=True,
            can_calculate=True,
            issues=[
                ValidationIssue(
                    field="expenses.taxi",
                    issue_type="unallocated_cost",
                    message="Nobody is assigned",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warning_count == 1

    def test_issue_severity_is_constrained(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestExpenseTypes:
    """Tests for expense enums."""

    def test_all_expense_types_exist(self):
        """Test that the four categories exist."""
        for value in ["dailyShared", "dailyPersonal", "oneTimeShared", "oneTimePersonal"]:
            assert ExpenseType(value) is not None

    def test_daily_flag(self):
        """Test the daily/one-time partition."""
        assert ExpenseType.DAILY_SHARED.is_daily
        assert ExpenseType.DAILY_PERSONAL.is_daily
        assert not ExpenseType.ONE_TIME_SHARED.is_daily
        assert not ExpenseType.ONE_TIME_PERSONAL.is_daily


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
