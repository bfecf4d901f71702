"""
Audit Logger

DESIGN DECISION: Every significant step of a budget flow is logged.
This provides:
1. Traceability of how a budget was produced
2. Debugging capability when data was dropped or rejected
3. An in-memory trail the caller can show or persist

The audit logger:
- Writes structured JSON through structlog at the event's severity
- Keeps every event it logged, in order, on `events`
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from trip_budget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    One instance per flow (or per app, if the caller clears `events`).
    """

    def __init__(self):
        self._logger = structlog.get_logger("trip_budget.audit")
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        """Events logged so far, oldest first."""
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()

    def log(self, event: AuditEvent) -> AuditEvent:
        """
        Log an audit event and append it to the trail.

        Returns the event for chaining.
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._events.append(event)
        return event

    def log_state_migrated(
        self,
        source_version: Optional[int],
        target_version: int,
        dropped: dict[str, int],
        pruned_references: int,
        correlation_id: UUID,
    ) -> None:
        """Log a document passing through migration."""
        self.log(AuditEventBuilder.state_migrated(
            source_version=source_version,
            target_version=target_version,
            dropped=dropped,
            pruned_references=pruned_references,
            correlation_id=correlation_id,
        ))

    def log_rates_fetched(self, base: str, currency_count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.rates_fetched(
            base=base,
            currency_count=currency_count,
            correlation_id=correlation_id,
        ))

    def log_rates_fallback(self, reason: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.rates_fallback_used(
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_rate_missing(
        self,
        currencies: list[str],
        display_currency: str,
        correlation_id: UUID,
    ) -> None:
        """Log a calculation refused for missing rates."""
        self.log(AuditEventBuilder.rate_missing(
            currencies=currencies,
            display_currency=display_currency,
            correlation_id=correlation_id,
        ))

    def log_budget_calculated(
        self,
        display_currency: str,
        traveler_count: int,
        grand_total: float,
        is_approximate: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.budget_calculated(
            display_currency=display_currency,
            traveler_count=traveler_count,
            grand_total=grand_total,
            is_approximate=is_approximate,
            correlation_id=correlation_id,
        ))

    def log_review_completed(
        self,
        error_count: int,
        warning_count: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.review_completed(
            error_count=error_count,
            warning_count=warning_count,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_action_applied(self, action_type: str, label: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.action_applied(
            action_type=action_type,
            label=label,
            correlation_id=correlation_id,
        ))

    def log_action_rejected(self, error: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.action_rejected(
            error=error,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a flow (e.g., one calculation) and pass it
    through all subsequent operations.
    """
    return uuid4()
