"""
Data Models Package

This package contains all Pydantic models used by Trend Sync.
All data flowing between the local collection and the backend
must conform to these schemas.
"""

from trendsync.models.transaction import (
    Recurrence,
    TransactionDraft,
    TransactionRecord,
    TransactionType,
)
from trendsync.models.category import (
    CategoryNode,
    CategoryRecord,
    SubcategoryNode,
)
from trendsync.models.outcome import (
    CategoryChangeResult,
    EditOpenResult,
    EditOpenStatus,
    EditSession,
    MutationKind,
    MutationOutcome,
    MutationStatus,
)
from trendsync.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from trendsync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "Recurrence",
    "TransactionDraft",
    "TransactionRecord",
    "TransactionType",
    # Category models
    "CategoryNode",
    "CategoryRecord",
    "SubcategoryNode",
    # Outcomes
    "CategoryChangeResult",
    "EditOpenResult",
    "EditOpenStatus",
    "EditSession",
    "MutationKind",
    "MutationOutcome",
    "MutationStatus",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
