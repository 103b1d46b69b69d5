"""
Abstract Audit Storage Interface

DESIGN DECISION: Audit events can optionally be persisted somewhere
other than the local structured log. The sync layer never depends on
a particular store, so the app can keep events in memory, ship them
to a device database, or not persist them at all.

Audit logs are append-only - we never delete or modify them.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from trendsync.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one mutation and its resolution).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'category')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.
        """
        pass


class StorageError(Exception):
    """Base exception for audit storage operations."""
    pass
