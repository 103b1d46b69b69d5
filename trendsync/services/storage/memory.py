"""
In-Memory Audit Storage

Keeps audit events in a process-local list. Used by default on the
device and in tests.
"""

from typing import Optional
from uuid import UUID

from trendsync.models.audit import AuditEvent
from trendsync.services.storage.interface import AuditStorageInterface, StorageError


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Append-only event list with an optional size cap.

    When the cap is reached the oldest events are dropped first.
    """

    def __init__(self, max_events: Optional[int] = None):
        if max_events is not None and max_events <= 0:
            raise StorageError("max_events must be positive")
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        if self._max_events is not None and len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events[-limit:])) if limit > 0 else []

    @property
    def events(self) -> list[AuditEvent]:
        """All stored events in chronological order (a copy)."""
        return list(self._events)
