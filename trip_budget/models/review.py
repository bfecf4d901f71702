"""
Trip Review Models

Findings from reviewing a trip before (or alongside) a calculation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single issue found in a trip."""

    field: str = Field(
        ...,
        description="Part of the trip with the issue (e.g., 'travelers', 'usageCosts.days.2024-06-01')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'dangling_reference', 'unallocated_cost')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage trip review.

    Stage 1: Structural validation (document invariants)
    Stage 2: Semantic validation (cost allocation pitfalls)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    # Stage results
    structural_valid: bool = Field(
        ...,
        description="Did structural validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )

    # Overall result
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    can_calculate: bool = Field(
        ...,
        description="Is the trip consistent enough to aggregate?"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "warning")
