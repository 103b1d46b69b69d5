"""Shared test fixtures."""

from datetime import datetime

import pytest

from trendsync.audit import AuditLogger
from trendsync.config import SyncSettings
from trendsync.orchestrator import LedgerStore
from trendsync.services.storage import InMemoryAuditStorage

from fakes import CATEGORIES, FakeAuthority, wire_record


@pytest.fixture
def sync_settings():
    return SyncSettings()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def authority():
    return FakeAuthority(
        records=[
            wire_record("1", amount="50.00", description="Groceries"),
            wire_record("2", amount="25.00", description="Coffee"),
            wire_record("3", amount="10.00", description="Bus", category_id="transport",
                        day=datetime(2024, 3, 2, 9, 0)),
        ],
        categories=CATEGORIES,
    )


@pytest.fixture
def make_store(sync_settings, audit_storage):
    """Build a LedgerStore around a given authority."""
    def _make(authority, on_not_authenticated=None):
        return LedgerStore(
            authority=authority,
            audit_logger=AuditLogger(audit_storage),
            settings=sync_settings,
            on_not_authenticated=on_not_authenticated,
        )
    return _make
