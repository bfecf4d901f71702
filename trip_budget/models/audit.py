"""
Audit Models for Trip Budget

Every significant step of a budget flow is recorded as an audit event:
loading and migrating a document, fetching rates, applying assistant
actions, reviewing and calculating.

This provides:
1. Traceability of how a budget was produced (which rates, which document)
2. Debugging information when data was dropped or rejected
3. A per-flow trail that callers can show or persist

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Document handling
    STATE_MIGRATED = "state_migrated"

    # Exchange rates
    RATES_FETCHED = "rates_fetched"
    RATES_FALLBACK_USED = "rates_fallback_used"
    RATE_MISSING = "rate_missing"

    # Calculation and review
    BUDGET_CALCULATED = "budget_calculated"
    REVIEW_COMPLETED = "review_completed"

    # Assistant actions
    ACTION_APPLIED = "action_applied"
    ACTION_REJECTED = "action_rejected"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'trip', 'rates', 'action')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to (traveler or expense ids are strings)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one calculation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.state_migrated(1, 1, {}, 0, correlation_id)
        event = AuditEventBuilder.rate_missing(["JPY"], "USD", correlation_id)
    """

    @staticmethod
    def state_migrated(
        source_version: Optional[int],
        target_version: int,
        dropped: dict[str, int],
        pruned_references: int,
        correlation_id: UUID
    ) -> AuditEvent:
        total_dropped = sum(dropped.values())
        return AuditEvent(
            event_type=AuditEventType.STATE_MIGRATED,
            severity=(
                AuditSeverity.WARNING
                if total_dropped or pruned_references
                else AuditSeverity.INFO
            ),
            entity_type="trip",
            correlation_id=correlation_id,
            description=(
                f"Trip state migrated to v{target_version}: "
                f"{total_dropped} entries dropped, {pruned_references} references pruned"
            ),
            details={
                "source_version": source_version,
                "target_version": target_version,
                "dropped": dropped,
                "pruned_references": pruned_references,
            },
        )

    @staticmethod
    def rates_fetched(
        base: str,
        currency_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FETCHED,
            entity_type="rates",
            correlation_id=correlation_id,
            description=f"Fetched {currency_count} exchange rates (base {base})",
            details={
                "base": base,
                "currency_count": currency_count,
            },
        )

    @staticmethod
    def rates_fallback_used(
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="rates",
            correlation_id=correlation_id,
            description="Using fallback exchange rates",
            error_message=reason,
        )

    @staticmethod
    def rate_missing(
        currencies: list[str],
        display_currency: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_MISSING,
            severity=AuditSeverity.ERROR,
            entity_type="rates",
            correlation_id=correlation_id,
            description=f"No exchange rate for: {', '.join(currencies)}",
            details={
                "currencies": currencies,
                "display_currency": display_currency,
            },
            error_code="MISSING_RATE",
        )

    @staticmethod
    def budget_calculated(
        display_currency: str,
        traveler_count: int,
        grand_total: float,
        is_approximate: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CALCULATED,
            entity_type="trip",
            correlation_id=correlation_id,
            description=(
                f"Budget calculated for {traveler_count} travelers: "
                f"{grand_total:,.2f} {display_currency}"
            ),
            details={
                "display_currency": display_currency,
                "traveler_count": traveler_count,
                "grand_total": grand_total,
                "is_approximate": is_approximate,
            },
        )

    @staticmethod
    def review_completed(
        error_count: int,
        warning_count: int,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REVIEW_COMPLETED,
            severity=AuditSeverity.WARNING if error_count else AuditSeverity.INFO,
            entity_type="trip",
            correlation_id=correlation_id,
            description=f"Review found {error_count} errors and {warning_count} warnings",
            details={
                "error_count": error_count,
                "warning_count": warning_count,
                "issues": issues,
            },
        )

    @staticmethod
    def action_applied(
        action_type: str,
        label: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTION_APPLIED,
            entity_type="action",
            correlation_id=correlation_id,
            description=label[:500],
            details={
                "action_type": action_type,
            },
            is_user_action=True,
        )

    @staticmethod
    def action_rejected(
        error: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="action",
            correlation_id=correlation_id,
            description="Assistant action rejected",
            error_message=error,
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
