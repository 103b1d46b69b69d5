"""
Audit Logger

DESIGN DECISION: Every optimistic change and its resolution is logged.
This provides:
1. Traceability of what the user saw and when
2. Debugging capability when a rollback happens
3. A place to hang persistence without touching the sync code

The audit logger:
- Is async so it composes with the mutation flow
- Gracefully handles failures (a broken audit store never fails a mutation)
- Supports correlation IDs to tie a mutation to its resolution
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from trendsync.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from trendsync.services.storage import AuditStorageInterface


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


def configure_logging(log_level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at the given level.

    structlog renders the JSON line; stdlib only decides whether it is emitted.
    """
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    logging.getLogger().setLevel(log_level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional audit store (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("trendsync.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
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

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_mutation_applied(
        self,
        kind: str,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log an optimistic change applied to the local collection."""
        await self.log(AuditEventBuilder.mutation_applied(kind, transaction_id, correlation_id))

    async def log_mutation_confirmed(
        self,
        kind: str,
        transaction_id: str,
        correlation_id: UUID,
        replaced_id: Optional[str] = None,
    ) -> None:
        """Log backend confirmation of a mutation."""
        await self.log(
            AuditEventBuilder.mutation_confirmed(
                kind, transaction_id, correlation_id, replaced_id=replaced_id
            )
        )

    async def log_mutation_rolled_back(
        self,
        kind: str,
        transaction_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a rollback after backend failure."""
        await self.log(
            AuditEventBuilder.mutation_rolled_back(
                kind, transaction_id, error_message, correlation_id
            )
        )

    async def log_rollback_superseded(
        self,
        kind: str,
        transaction_id: str,
        generation: int,
        current_generation: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.rollback_superseded(
                kind, transaction_id, generation, current_generation, correlation_id
            )
        )

    async def log_mutation_rejected(
        self,
        kind: str,
        transaction_id: Optional[str],
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.mutation_rejected(kind, transaction_id, reason, correlation_id)
        )

    async def log_edit_opened(self, transaction_id: str, is_stale: bool) -> None:
        await self.log(AuditEventBuilder.edit_opened(transaction_id, is_stale))

    async def log_edit_not_found(self, transaction_id: str, reason: str) -> None:
        await self.log(AuditEventBuilder.edit_not_found(transaction_id, reason))

    async def log_edit_closed(self, transaction_id: str, reason: str) -> None:
        await self.log(AuditEventBuilder.edit_closed(transaction_id, reason))

    async def log_not_authenticated(self, operation: str) -> None:
        """Log an operation skipped because there is no session."""
        await self.log(AuditEventBuilder.not_authenticated(operation))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
