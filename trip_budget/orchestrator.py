"""
Main Orchestrator for Trip Budget

This module ties together all the components and defines the
end-to-end flows for:
1. Budget (raw document -> migrate -> review -> rates -> aggregate)
2. Assistant actions (reply -> parse -> apply)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No document reaches the engine without migration
- No calculation runs on a partial rate table
- Every step is audited

The engine stays pure; fetching, auditing and defaults live here.
"""

from typing import Any, Optional, Sequence
from uuid import UUID

from trip_budget.actions import apply_actions, describe_action, parse_ai_response
from trip_budget.audit import AuditLogger, create_correlation_id
from trip_budget.config import EngineSettings, get_settings
from trip_budget.engine import MissingRateError, RateTable, aggregate
from trip_budget.migration import MigrationReport, migrate_state_with_report
from trip_budget.models.actions import AiResponse, ApplyResult
from trip_budget.models.budget import BudgetSummary
from trip_budget.models.review import ValidationResult
from trip_budget.models.trip import TripState
from trip_budget.services.rates import ExchangeRateError, ExchangeRateService, RateSnapshot
from trip_budget.validation import TripStateValidator


class BudgetFlow:
    """
    Orchestrates the budget flow.

    Flow:
    1. Load -> Migrate the raw document into a valid TripState
    2. Review -> Two-stage review (optional, never blocks)
    3. Rates -> Fetch the rate table unless the caller supplies one
    4. Calculate -> Aggregate per-traveler costs

    A missing rate stops the calculation. The system NEVER guesses a rate.
    """

    def __init__(
        self,
        rate_service: Optional[ExchangeRateService] = None,
        validator: Optional[TripStateValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._rate_service = rate_service
        self._validator = validator or TripStateValidator()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().engine

    def _get_rate_service(self) -> ExchangeRateService:
        if self._rate_service is None:
            self._rate_service = ExchangeRateService()
        return self._rate_service

    def load_state(
        self,
        raw: Any,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[TripState, MigrationReport]:
        """
        Migrate a raw document (decoded JSON) into a TripState.

        Never raises; anything unusable is dropped and reported.
        """
        correlation_id = correlation_id or create_correlation_id()

        state, report = migrate_state_with_report(
            raw,
            self._settings.default_display_currency,
        )

        if self._audit_logger:
            self._audit_logger.log_state_migrated(
                source_version=report.source_version,
                target_version=report.target_version,
                dropped=report.dropped,
                pruned_references=report.pruned_references,
                correlation_id=correlation_id,
            )

        return state, report

    def review(
        self,
        state: TripState,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """Run the two-stage review on a trip."""
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(state)

        if self._audit_logger:
            self._audit_logger.log_review_completed(
                error_count=result.error_count,
                warning_count=result.warning_count,
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )

        return result

    def fetch_rates(self, correlation_id: Optional[UUID] = None) -> RateSnapshot:
        """
        Fetch the current rate table.

        Raises:
            ExchangeRateError: If the provider failed and fallback is disabled
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            snapshot = self._get_rate_service().fetch_rates()
        except ExchangeRateError as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="exchange_rates",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if snapshot.is_fallback:
                self._audit_logger.log_rates_fallback(
                    reason=snapshot.fallback_reason or "unknown",
                    correlation_id=correlation_id,
                )
            else:
                self._audit_logger.log_rates_fetched(
                    base=snapshot.base,
                    currency_count=len(snapshot.rates),
                    correlation_id=correlation_id,
                )

        return snapshot

    def calculate(
        self,
        state: TripState,
        rates: Optional[RateTable] = None,
        display_currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetSummary:
        """
        Compute the budget for a migrated trip.

        Args:
            state: Trip produced by load_state (or the state update functions)
            rates: Rate table to use. Fetched from the provider if None.
            display_currency: Defaults to the trip's own display currency

        Raises:
            MissingRateError: If a currency in use has no rate
            ExchangeRateError: If rates had to be fetched and could not be
        """
        correlation_id = correlation_id or create_correlation_id()

        if rates is None:
            rates = self.fetch_rates(correlation_id).rates

        currency = display_currency or state.display_currency
        try:
            summary = aggregate(state, rates, currency)
        except MissingRateError as e:
            if self._audit_logger:
                self._audit_logger.log_rate_missing(
                    currencies=e.currencies,
                    display_currency=currency,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_budget_calculated(
                display_currency=summary.display_currency,
                traveler_count=len(summary.traveler_costs),
                grand_total=summary.grand_total.amount,
                is_approximate=summary.grand_total.is_approximate,
                correlation_id=correlation_id,
            )

        return summary


class ActionFlow:
    """
    Orchestrates assistant-proposed edits.

    CRITICAL BOUNDARIES:
    1. Assistant reply -> typed actions (invalid ones skipped)
    2. Actions -> applied one at a time through the state update functions

    The assistant NEVER writes the trip directly.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger

    def interpret(
        self,
        state: TripState,
        payload: Any,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ApplyResult, Optional[AiResponse]]:
        """
        Parse an assistant reply and apply its actions to state.

        Returns:
            (apply_result, response). apply_result.errors holds parse errors
            followed by per-action apply errors; response is None when
            nothing in the reply was valid.
        """
        correlation_id = correlation_id or create_correlation_id()

        parsed = parse_ai_response(payload)
        if parsed.response is None:
            self._audit_rejections(parsed.errors, correlation_id)
            return ApplyResult(next_state=state, errors=parsed.errors), None

        result = apply_actions(state, parsed.response.actions)

        if self._audit_logger:
            for action in result.applied:
                self._audit_logger.log_action_applied(
                    action_type=action.type,
                    label=describe_action(action, result.next_state),
                    correlation_id=correlation_id,
                )
        self._audit_rejections([*parsed.errors, *result.errors], correlation_id)

        combined = result.model_copy(update={"errors": [*parsed.errors, *result.errors]})
        return combined, parsed.response

    def _audit_rejections(self, errors: Sequence[str], correlation_id: UUID) -> None:
        if not self._audit_logger:
            return
        for error in errors:
            self._audit_logger.log_action_rejected(
                error=error,
                correlation_id=correlation_id,
            )


def create_app_components() -> tuple[BudgetFlow, ActionFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Both flows share one audit logger, so its trail covers a whole session.

    Returns:
        (budget_flow, action_flow, audit_logger)
    """
    audit_logger = AuditLogger()

    budget_flow = BudgetFlow(
        rate_service=ExchangeRateService(),
        audit_logger=audit_logger,
    )

    action_flow = ActionFlow(audit_logger=audit_logger)

    return budget_flow, action_flow, audit_logger
