"""
Tests for the audit logger and the in-memory audit store.
"""

import asyncio

import pytest

from trendsync.audit import AuditLogger, create_correlation_id
from trendsync.models import AuditEventType
from trendsync.models.audit import AuditEventBuilder
from trendsync.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)


class BrokenStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("disk full")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_persists_event(self):
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)

        stored = asyncio.run(audit_logger.log(AuditEventBuilder.not_authenticated("create")))

        assert stored is True
        assert storage.events[0].event_type == AuditEventType.NOT_AUTHENTICATED
        assert storage.events[0].details == {"operation": "create"}

    def test_log_without_storage(self):
        assert asyncio.run(AuditLogger().log(AuditEventBuilder.not_authenticated("x"))) is True

    def test_storage_failure_is_not_raised(self):
        audit_logger = AuditLogger(BrokenStorage())
        assert asyncio.run(audit_logger.log(AuditEventBuilder.not_authenticated("x"))) is False

    def test_correlated_events(self):
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        async def scenario():
            await audit_logger.log_mutation_applied("update", "1", correlation_id)
            await audit_logger.log_mutation_rolled_back("update", "1", "offline", correlation_id)
            await audit_logger.log_mutation_applied("update", "2", create_correlation_id())
            return await storage.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())
        assert [e.event_type for e in events] == [
            AuditEventType.MUTATION_APPLIED,
            AuditEventType.MUTATION_ROLLED_BACK,
        ]
        assert events[1].error_message == "offline"

    def test_log_error(self):
        storage = InMemoryAuditStorage()
        asyncio.run(AuditLogger(storage).log_error("TypeError", "boom", {"where": "load"}))
        event = storage.events[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "boom"


class TestInMemoryAuditStorage:
    """Tests for InMemoryAuditStorage."""

    def test_implements_interface(self):
        assert isinstance(InMemoryAuditStorage(), AuditStorageInterface)

    def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()

        async def scenario():
            for operation in ("a", "b", "c"):
                await storage.append_event(AuditEventBuilder.not_authenticated(operation))
            return await storage.get_recent_events(limit=2)

        recent = asyncio.run(scenario())
        assert [e.details["operation"] for e in recent] == ["c", "b"]

    def test_max_events_drops_oldest(self):
        storage = InMemoryAuditStorage(max_events=2)

        async def scenario():
            for operation in ("a", "b", "c"):
                await storage.append_event(AuditEventBuilder.not_authenticated(operation))

        asyncio.run(scenario())
        assert [e.details["operation"] for e in storage.events] == ["b", "c"]

    def test_invalid_cap(self):
        with pytest.raises(StorageError):
            InMemoryAuditStorage(max_events=0)

    def test_events_by_entity(self):
        storage = InMemoryAuditStorage()
        correlation_id = create_correlation_id()

        async def scenario():
            await storage.append_event(AuditEventBuilder.mutation_applied("delete", "7", correlation_id))
            await storage.append_event(AuditEventBuilder.mutation_applied("delete", "8", correlation_id))
            return await storage.get_events_by_entity("transaction", "7")

        events = asyncio.run(scenario())
        assert len(events) == 1
        assert events[0].entity_id == "7"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
