"""
Audit Models for Trend Sync

Every step of a synchronization is recorded as an audit event.
This provides:
1. Traceability of every optimistic change and its resolution
2. Debugging information when a rollback happens
3. Ability to reconstruct what the user saw and when

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from trendsync.models.transaction import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of the sync lifecycle has its own event type.
    """
    # Loading from the backend
    TRANSACTIONS_LOADED = "transactions_loaded"
    TRANSACTIONS_LOAD_FAILED = "transactions_load_failed"
    CATEGORIES_LOADED = "categories_loaded"
    CATEGORIES_UNAVAILABLE = "categories_unavailable"

    # Category management
    CATEGORY_CHANGED = "category_changed"
    CATEGORY_CHANGE_FAILED = "category_change_failed"

    # Optimistic mutations
    MUTATION_APPLIED = "mutation_applied"
    MUTATION_CONFIRMED = "mutation_confirmed"
    MUTATION_ROLLED_BACK = "mutation_rolled_back"
    ROLLBACK_SUPERSEDED = "rollback_superseded"
    MUTATION_REJECTED = "mutation_rejected"

    # Edit sessions
    EDIT_OPENED = "edit_opened"
    EDIT_OPENED_STALE = "edit_opened_stale"
    EDIT_NOT_FOUND = "edit_not_found"
    EDIT_CLOSED = "edit_closed"

    # Access
    NOT_AUTHENTICATED = "not_authenticated"

    # System events
    SYSTEM_ERROR = "system_error"


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

    This is the core unit of our audit trail.
    Every significant sync step creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
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
        description="Type of entity (e.g., 'transaction', 'category')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one id per user action (a mutation and its resolution)
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
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
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.mutation_applied("create", temp_id, correlation_id)
        event = AuditEventBuilder.edit_opened(transaction_id, is_stale=False)
    """

    @staticmethod
    def transactions_loaded(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_LOADED,
            entity_type="transaction",
            description=f"Loaded {count} transactions from backend",
            details={"count": count},
        )

    @staticmethod
    def transactions_load_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description="Could not load transactions; keeping local collection",
            error_message=error_message,
        )

    @staticmethod
    def categories_loaded(top_level: int, subcategories: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_LOADED,
            entity_type="category",
            description=f"Built hierarchy with {top_level} categories",
            details={
                "top_level": top_level,
                "subcategories": subcategories,
            },
        )

    @staticmethod
    def categories_unavailable(error_message: str, used_fallback: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            description="Categories unavailable from backend",
            details={"used_fallback": used_fallback},
            error_message=error_message,
        )

    @staticmethod
    def category_changed(kind: str, category_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CHANGED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category {kind} confirmed by backend",
            details={"kind": kind},
            is_user_action=True,
        )

    @staticmethod
    def category_change_failed(
        kind: str,
        category_id: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CHANGE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            entity_id=category_id,
            description=f"Category {kind} failed",
            details={"kind": kind},
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def mutation_applied(
        kind: str,
        transaction_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_APPLIED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Applied {kind} locally",
            details={"kind": kind},
            is_user_action=True,
        )

    @staticmethod
    def mutation_confirmed(
        kind: str,
        transaction_id: str,
        correlation_id: UUID,
        replaced_id: Optional[str] = None,
    ) -> AuditEvent:
        details: dict[str, Any] = {"kind": kind}
        if replaced_id:
            details["replaced_id"] = replaced_id
        return AuditEvent(
            event_type=AuditEventType.MUTATION_CONFIRMED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Backend confirmed {kind}",
            details=details,
        )

    @staticmethod
    def mutation_rolled_back(
        kind: str,
        transaction_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_ROLLED_BACK,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Rolled back {kind} after backend failure",
            details={"kind": kind},
            error_message=error_message,
        )

    @staticmethod
    def rollback_superseded(
        kind: str,
        transaction_id: str,
        generation: int,
        current_generation: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLBACK_SUPERSEDED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Skipped rollback of {kind}; a newer mutation owns the record",
            details={
                "kind": kind,
                "generation": generation,
                "current_generation": current_generation,
            },
        )

    @staticmethod
    def mutation_rejected(
        kind: str,
        transaction_id: Optional[str],
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Rejected {kind} before applying it",
            details={"kind": kind, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def edit_opened(transaction_id: str, is_stale: bool) -> AuditEvent:
        if is_stale:
            return AuditEvent(
                event_type=AuditEventType.EDIT_OPENED_STALE,
                severity=AuditSeverity.WARNING,
                entity_type="transaction",
                entity_id=transaction_id,
                description="Opened edit from local cache; backend unreachable",
                is_user_action=True,
            )
        return AuditEvent(
            event_type=AuditEventType.EDIT_OPENED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Opened edit with backend copy",
            is_user_action=True,
        )

    @staticmethod
    def edit_not_found(transaction_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EDIT_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Record to edit was not found",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def edit_closed(transaction_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EDIT_CLOSED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Edit session closed ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def not_authenticated(operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOT_AUTHENTICATED,
            severity=AuditSeverity.WARNING,
            description=f"Skipped {operation}: user not authenticated",
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
