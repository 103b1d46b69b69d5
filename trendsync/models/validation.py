"""
Validation Models

Validation never silently fixes input. It reports issues and lets the
form decide what to show.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from trendsync.models.transaction import utc_now


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'too_long')"
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
    """Outcome of validating a transaction draft or a category form."""

    validated_at: datetime = Field(default_factory=utc_now)

    is_valid: bool = Field(
        ...,
        description="True when there are no error-severity issues"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Warning messages for the user"
    )

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> "ValidationResult":
        return cls(
            is_valid=not any(i.severity == "error" for i in issues),
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )
