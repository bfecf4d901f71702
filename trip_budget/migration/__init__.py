"""State migration package."""

from trip_budget.migration.migrator import (
    MigrationReport,
    count_references,
    migrate_state,
    migrate_state_with_report,
    needs_migration,
    prune_usage_to_travelers,
    sanitize_expenses,
    sanitize_travelers,
    sanitize_usage_costs,
)

__all__ = [
    "MigrationReport",
    "count_references",
    "migrate_state",
    "migrate_state_with_report",
    "needs_migration",
    "prune_usage_to_travelers",
    "sanitize_expenses",
    "sanitize_travelers",
    "sanitize_usage_costs",
]
