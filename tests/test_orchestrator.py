"""
Tests for the LedgerStore facade and the component factory.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from trendsync.audit import AuditLogger
from trendsync.config import Settings, SyncSettings, get_settings, validate_all_settings
from trendsync.models import AuditEventType, MutationKind, MutationStatus, TransactionDraft
from trendsync.orchestrator import CATEGORY_IN_USE_MESSAGE, LedgerStore, create_app_components
from trendsync.services.remote import (
    AuthorityUnreachableError,
    NotAuthenticatedError,
    TrendApiClient,
)
from trendsync.services.storage import InMemoryAuditStorage

from fakes import CATEGORIES, FakeAuthority


class TestLoadCategories:
    """Tests for category loading."""

    def test_builds_hierarchy(self, authority, make_store):
        store = make_store(authority)
        nodes = asyncio.run(store.load_categories())
        assert [n.id for n in nodes] == ["food", "transport"]
        assert store.categories[0].subcategories[0].name == "Groceries"
        assert store.category_label("transport", "bus") == "Bus"

    def test_malformed_categories_mean_none(self, make_store):
        store = make_store(FakeAuthority(categories={"unexpected": "shape"}))
        assert asyncio.run(store.load_categories()) == []

    def test_failure_keeps_current_hierarchy(self, authority, make_store):
        store = make_store(authority)

        async def scenario():
            await store.load_categories()
            authority.fail_next("fetch_categories", AuthorityUnreachableError("offline"))
            return await store.load_categories()

        assert [n.id for n in asyncio.run(scenario())] == ["food", "transport"]

    def test_failure_without_fallback_is_empty(self, authority, make_store, audit_storage):
        store = make_store(authority)
        authority.fail_next("fetch_categories", AuthorityUnreachableError("offline"))
        assert asyncio.run(store.load_categories()) == []
        event = asyncio.run(audit_storage.get_recent_events(1))[0]
        assert event.event_type == AuditEventType.CATEGORIES_UNAVAILABLE
        assert event.details["used_fallback"] is False

    def test_failure_with_fallback_enabled(self, authority):
        store = LedgerStore(
            authority,
            audit_logger=AuditLogger(),
            settings=SyncSettings(fallback_categories_enabled=True),
        )
        authority.fail_next("fetch_categories", AuthorityUnreachableError("offline"))
        nodes = asyncio.run(store.load_categories())
        assert [n.name for n in nodes] == ["Food", "Other", "Shopping", "Transport"]

    def test_signed_out_makes_no_call(self, authority, make_store):
        authority.authenticated = False
        store = make_store(authority)
        assert asyncio.run(store.load_categories()) == []
        assert authority.calls == []


class TestCategoryChanges:
    """Tests for creating, renaming and deleting categories."""

    def _loaded(self, store):
        asyncio.run(store.load_categories())
        return store

    def test_create_category(self, authority, make_store, audit_storage):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.create_category("Books", "book-outline", "#123456"))
        assert result.success is True
        assert result.kind == MutationKind.CREATE
        assert result.category.name == "Books"
        assert result.category_id in [n.id for n in store.categories]
        assert authority.calls[-1] == (
            "create_category",
            {"name": "Books", "icon": "book-outline", "description": "", "color": "#123456"},
        )
        event = asyncio.run(audit_storage.get_recent_events(1))[0]
        assert event.event_type == AuditEventType.CATEGORY_CHANGED

    def test_create_subcategory(self, authority, make_store):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.create_category("  Bakery ", "cafe-outline", parent_id="food"))
        assert result.success is True
        assert result.category.parent_id == "food"
        assert authority.calls[-1][1]["parentId"] == "food"
        assert authority.calls[-1][1]["name"] == "Bakery"
        food = next(n for n in store.categories if n.id == "food")
        assert sorted(s.name for s in food.subcategories) == ["Bakery", "Groceries"]

    def test_invalid_form_sends_nothing(self, authority, make_store):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.create_category(" ", None))
        assert result.success is False
        assert result.issues == [
            "Category name is required",
            "Category icon is required",
            "Category color is required",
        ]
        assert "create_category" not in authority.call_names()

    def test_subcategory_needs_no_color(self, authority, make_store):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.create_category("Taxi", "car-outline", parent_id="transport"))
        assert result.success is True
        assert "color" not in authority.calls[-1][1]

    def test_unknown_parent(self, authority, make_store):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.create_category("Taxi", "car-outline", parent_id="missing"))
        assert result.success is False
        assert result.error_message == "Parent category not found"
        assert "create_category" not in authority.call_names()

    def test_signed_out_makes_no_call(self, authority, make_store):
        calls = []
        store = self._loaded(make_store(authority, on_not_authenticated=lambda: calls.append(1)))
        authority.authenticated = False
        result = asyncio.run(store.create_category("Books", "book-outline", "#123456"))
        assert result.error_message == "Authentication required"
        assert "create_category" not in authority.call_names()
        assert calls == [1]

    def test_session_expiry_during_create(self, authority, make_store):
        calls = []
        store = self._loaded(make_store(authority, on_not_authenticated=lambda: calls.append(1)))
        authority.fail_next("create_category", NotAuthenticatedError("expired"))
        result = asyncio.run(store.create_category("Books", "book-outline", "#123456"))
        assert result.success is False
        assert calls == [1]
        assert [n.id for n in store.categories] == ["food", "transport"]

    def test_remote_failure_keeps_hierarchy(self, authority, make_store, audit_storage):
        store = self._loaded(make_store(authority))
        authority.fail_next("create_category", AuthorityUnreachableError("offline"))
        result = asyncio.run(store.create_category("Books", "book-outline", "#123456"))
        assert result.success is False
        assert result.error_message == "offline"
        assert [n.id for n in store.categories] == ["food", "transport"]
        event = asyncio.run(audit_storage.get_recent_events(1))[0]
        assert event.event_type == AuditEventType.CATEGORY_CHANGE_FAILED

    def test_update_category(self, authority, make_store):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.update_category("transport", "Travel", "car-outline", "#000000"))
        assert result.success is True
        assert result.kind == MutationKind.UPDATE
        assert store.category_label("transport") == "Travel"
        # Subcategories stay attached
        assert store.category_label("transport", "bus") == "Bus"

    def test_update_subcategory_keeps_parent(self, authority, make_store):
        store = self._loaded(make_store(authority))
        authority.categories = [c for c in authority.categories if c["id"] != "groceries"] + [
            {"id": "groceries", "name": "Groceries", "icon": "cart-outline"},
        ]
        result = asyncio.run(store.update_category("groceries", "Supermarket", "cart-outline"))
        assert result.success is True
        assert result.category.parent_id == "food"
        assert store.category_label("food", "groceries") == "Supermarket"

    def test_update_unknown_category(self, authority, make_store):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.update_category("missing", "Travel", "car-outline", "#000000"))
        assert result.error_message == "Category not found"
        assert "update_category" not in authority.call_names()

    def test_delete_category_removes_subcategories(self, make_store):
        authority = FakeAuthority(categories=CATEGORIES)
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.delete_category("transport"))
        assert result.success is True
        assert result.kind == MutationKind.DELETE
        assert [n.id for n in store.categories] == ["food"]
        assert store.category_label("transport", "bus") == ""

    def test_delete_refused_while_in_use(self, authority, make_store, audit_storage):
        store = self._loaded(make_store(authority))
        result = asyncio.run(store.delete_category("food"))
        assert result.success is False
        assert result.error_message == CATEGORY_IN_USE_MESSAGE
        assert [n.id for n in store.categories] == ["food", "transport"]
        event = asyncio.run(audit_storage.get_recent_events(1))[0]
        assert event.event_type == AuditEventType.CATEGORY_CHANGE_FAILED

    def test_delete_already_gone_remotely(self, make_store):
        authority = FakeAuthority(categories=CATEGORIES)
        store = self._loaded(make_store(authority))
        authority.categories = [c for c in authority.categories if c["id"] != "bus"]
        result = asyncio.run(store.delete_category("bus"))
        assert result.success is True
        assert store.category_label("transport", "bus") == "Transport"


class TestLoadTransactions:
    """Tests for transaction loading."""

    def test_refresh_loads_both(self, authority, make_store):
        store = make_store(authority)
        assert asyncio.run(store.refresh()) is True
        assert len(store.transactions) == 3
        assert len(store.categories) == 2

    def test_failed_load_keeps_collection(self, authority, make_store):
        store = make_store(authority)

        async def scenario():
            await store.load_transactions()
            authority.fail_next("fetch_transactions", AuthorityUnreachableError("offline"))
            return await store.load_transactions()

        assert asyncio.run(scenario()) is False
        assert len(store.transactions) == 3

    def test_bad_records_are_skipped(self, make_store):
        authority = FakeAuthority(records=[
            {"id": "ok", "amount": 1, "categoryId": "food", "date": "2024-03-01T00:00:00"},
            {"id": "bad", "amount": -4, "categoryId": "food", "date": "2024-03-01T00:00:00"},
        ])
        store = make_store(authority)
        asyncio.run(store.load_transactions())
        assert [r.id for r in store.transactions] == ["ok"]

    def test_transactions_are_a_snapshot(self, authority, make_store):
        """Test a snapshot taken earlier doesn't change after a mutation."""
        store = make_store(authority)

        async def scenario():
            await store.load_transactions()
            before = store.transactions
            await store.delete("1")
            return before

        before = asyncio.run(scenario())
        assert len(before) == 3
        assert len(store.transactions) == 2


class TestStoreFlows:
    """End-to-end flows through the store."""

    def test_add_edit_save_flow(self, authority, make_store):
        store = make_store(authority)

        async def scenario():
            await store.refresh()
            fill = store.description_tracker()
            description = fill.select_category("food")
            created = await store.create(TransactionDraft(
                amount=Decimal("8"), description=description, category_id="food",
            ))
            opened = await store.begin_edit(created.transaction_id)
            edit_fill = store.description_tracker(original=opened.record)
            new_description = edit_fill.select_category("transport", "bus")
            updated = await store.update(created.transaction_id, TransactionDraft(
                amount=Decimal("9"), description=new_description,
                category_id="transport", subcategory_id="bus",
                date=opened.record.date,
            ))
            return created, updated

        created, updated = asyncio.run(scenario())
        assert created.transaction.description == "Food"
        assert updated.status == MutationStatus.CONFIRMED
        assert updated.transaction.description == "Bus"
        assert store.current_edit() is None

    def test_totals(self, authority, make_store):
        store = make_store(authority)
        asyncio.run(store.load_transactions())
        assert store.total_for_date(date(2024, 3, 1)) == Decimal("75")
        assert store.total_for_period(date(2024, 3, 1), date(2024, 3, 2)) == Decimal("85")
        assert store.totals_by_category() == {"food": Decimal("75"), "transport": Decimal("10")}
        assert store.recurring_total() == Decimal("0")


class TestFactory:
    """Tests for create_app_components and settings."""

    def test_create_app_components(self, monkeypatch):
        monkeypatch.setenv("TREND_API_BASE_URL", "https://api.example.com/api/")
        monkeypatch.setenv("TREND_API_TOKEN", "abc")
        storage = InMemoryAuditStorage()

        store, client, audit_logger = create_app_components(Settings(), audit_storage=storage)

        assert isinstance(store, LedgerStore)
        assert isinstance(client, TrendApiClient)
        assert isinstance(audit_logger, AuditLogger)
        assert client.is_authenticated() is True

    def test_validate_all_settings_reports_missing_base_url(self, monkeypatch):
        monkeypatch.delenv("TREND_API_BASE_URL", raising=False)
        get_settings.cache_clear()
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert results["trend_api"] is False
        assert "trend_api_error" in results
        assert results["sync"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
