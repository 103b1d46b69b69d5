"""
Main Orchestrator for Trend Sync

This module ties the components together behind one object the UI
talks to:
1. Loading (transactions and the category hierarchy)
2. Mutations (create / update / delete, optimistic)
3. Editing (open, cancel, description auto-fill)
4. Derived reads (daily totals, per-category totals)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No remote call while signed out; the app's handler is invoked instead
- The local collection has exactly one writer (the coordinator)
- Every step is audited

The UI only ever sees snapshots: a tuple of frozen records, a list of
frozen category nodes, the current edit session.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import structlog

from trendsync.audit import AuditLogger, configure_logging
from trendsync.config import Settings, SyncSettings, get_settings
from trendsync.editing import DescriptionAutoFill, EditSessionManager
from trendsync.hierarchy import (
    build_hierarchy,
    display_name,
    fallback_hierarchy,
    find_category,
    flatten_hierarchy,
)
from trendsync.models.audit import AuditEventBuilder
from trendsync.models.category import CategoryNode, CategoryRecord
from trendsync.models.outcome import (
    CategoryChangeResult,
    EditOpenResult,
    EditSession,
    MutationKind,
    MutationOutcome,
)
from trendsync.models.transaction import TransactionDraft, TransactionRecord
from trendsync.models.validation import ValidationResult
from trendsync.queries import recurring_total, total_for_period, totals_by_category
from trendsync.services.remote import (
    NotAuthenticatedError,
    NotFoundError,
    RemoteAuthorityInterface,
    TrendApiClient,
)
from trendsync.services.storage import AuditStorageInterface, InMemoryAuditStorage
from trendsync.sync import (
    AuthGate,
    LocalCollection,
    MutationCoordinator,
    MutationTracker,
    NotAuthenticatedHandler,
)
from trendsync.validation import CategoryValidator, TransactionValidator


logger = structlog.get_logger(__name__)

CATEGORY_IN_USE_MESSAGE = "This category cannot be deleted because it has associated transactions"


class LedgerStore:
    """
    The sync layer as seen by the UI.

    Owns the local collection, the category hierarchy and the edit
    session, and routes every change through the mutation coordinator.
    """

    def __init__(
        self,
        authority: RemoteAuthorityInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[SyncSettings] = None,
        on_not_authenticated: Optional[NotAuthenticatedHandler] = None,
    ):
        self._authority = authority
        self._settings = settings or get_settings().sync
        self._audit = audit_logger or AuditLogger()

        self._categories: list[CategoryNode] = []
        self._collection = LocalCollection()
        self._tracker = MutationTracker()
        self._gate = AuthGate(authority, self._audit, on_not_authenticated)
        self._category_validator = CategoryValidator()

        self._edit_sessions = EditSessionManager(
            authority=authority,
            collection=self._collection,
            tracker=self._tracker,
            gate=self._gate,
            audit_logger=self._audit,
            settings=self._settings,
        )
        self._coordinator = MutationCoordinator(
            authority=authority,
            collection=self._collection,
            edit_sessions=self._edit_sessions,
            tracker=self._tracker,
            gate=self._gate,
            audit_logger=self._audit,
            validator=TransactionValidator(self._settings),
            categories=lambda: self._categories,
            settings=self._settings,
        )

    # =========================================================================
    # State exposed to the UI
    # =========================================================================

    @property
    def transactions(self) -> tuple[TransactionRecord, ...]:
        return self._collection.snapshot()

    @property
    def categories(self) -> list[CategoryNode]:
        return list(self._categories)

    def current_edit(self) -> Optional[EditSession]:
        return self._edit_sessions.current_edit()

    # =========================================================================
    # Loading
    # =========================================================================

    async def load_transactions(self) -> bool:
        return await self._coordinator.load_transactions()

    async def load_categories(self) -> list[CategoryNode]:
        """
        Rebuild the category hierarchy from the backend.

        When the backend can't be reached, the current hierarchy is kept;
        if there is none yet, the built-in categories are used when enabled,
        otherwise the hierarchy is empty.
        """
        if not await self._gate.check("load_categories"):
            return self.categories

        try:
            flat = await self._authority.fetch_categories()
        except NotAuthenticatedError:
            await self._gate.reject("load_categories")
            return self.categories
        except Exception as e:
            used_fallback = False
            if not self._categories and self._settings.fallback_categories_enabled:
                self._categories = fallback_hierarchy(self._settings)
                used_fallback = True
            await self._audit.log(
                AuditEventBuilder.categories_unavailable(str(e), used_fallback)
            )
            return self.categories

        self._categories = build_hierarchy(flat, self._settings)
        await self._audit.log(AuditEventBuilder.categories_loaded(
            top_level=len(self._categories),
            subcategories=sum(len(n.subcategories) for n in self._categories),
        ))
        return self.categories

    async def refresh(self) -> bool:
        """Reload transactions and categories together."""
        loaded, _ = await asyncio.gather(self.load_transactions(), self.load_categories())
        return loaded

    # =========================================================================
    # Category management
    # =========================================================================

    async def create_category(
        self,
        name: str,
        icon: str,
        color: Optional[str] = None,
        parent_id: Optional[str] = None,
        description: str = "",
    ) -> CategoryChangeResult:
        """
        Create a category, or a subcategory of parent_id.

        Nothing is sent when the form doesn't validate. The hierarchy is
        rebuilt once the backend has answered.
        """
        kind = MutationKind.CREATE
        is_subcategory = parent_id is not None

        refused = await self._refuse_category_change(
            kind,
            None,
            self._category_validator.validate(name, icon, color, is_subcategory=is_subcategory),
        )
        if refused is not None:
            return refused
        if is_subcategory and find_category(self._categories, parent_id) is None:
            return CategoryChangeResult(
                kind=kind,
                success=False,
                error_message="Parent category not found",
            )

        payload = {"name": name.strip(), "icon": icon, "description": description}
        if color:
            payload["color"] = color
        if is_subcategory:
            payload["parentId"] = parent_id

        try:
            created = CategoryRecord.model_validate(
                await self._authority.create_category(payload)
            )
        except Exception as e:
            return await self._category_change_failed(kind, None, e)

        if is_subcategory and created.parent_id is None:
            created = created.model_copy(update={"parent_id": parent_id})
        self._rebuild_categories(flatten_hierarchy(self._categories) + [created])
        return await self._category_changed(kind, created)

    async def update_category(
        self,
        category_id: str,
        name: str,
        icon: str,
        color: Optional[str] = None,
    ) -> CategoryChangeResult:
        kind = MutationKind.UPDATE
        flat = flatten_hierarchy(self._categories)
        existing = next((r for r in flat if r.id == category_id), None)
        if existing is None:
            return CategoryChangeResult(
                kind=kind,
                success=False,
                category_id=category_id,
                error_message="Category not found",
            )

        refused = await self._refuse_category_change(
            kind,
            category_id,
            self._category_validator.validate(
                name, icon, color, is_subcategory=existing.parent_id is not None
            ),
        )
        if refused is not None:
            return refused

        payload = {"name": name.strip(), "icon": icon}
        if color:
            payload["color"] = color

        try:
            updated = CategoryRecord.model_validate(
                await self._authority.update_category(category_id, payload)
            )
        except Exception as e:
            return await self._category_change_failed(kind, category_id, e)

        if updated.parent_id is None and existing.parent_id is not None:
            updated = updated.model_copy(update={"parent_id": existing.parent_id})
        self._rebuild_categories([updated if r.id == category_id else r for r in flat])
        return await self._category_changed(kind, updated)

    async def delete_category(self, category_id: str) -> CategoryChangeResult:
        """
        Delete a category together with its subcategories.

        The backend refuses while transactions still use the category.
        A category the backend no longer has is removed locally as well.
        """
        kind = MutationKind.DELETE
        flat = flatten_hierarchy(self._categories)
        if not any(r.id == category_id for r in flat):
            return CategoryChangeResult(
                kind=kind,
                success=False,
                category_id=category_id,
                error_message="Category not found",
            )

        refused = await self._refuse_category_change(kind, category_id, None)
        if refused is not None:
            return refused

        try:
            await self._authority.delete_category(category_id)
        except NotFoundError:
            logger.info("category_already_deleted", category_id=category_id)
        except Exception as e:
            return await self._category_change_failed(kind, category_id, e)

        self._rebuild_categories(
            [r for r in flat if r.id != category_id and r.parent_id != category_id]
        )
        await self._audit.log(AuditEventBuilder.category_changed(kind.value, category_id))
        return CategoryChangeResult(kind=kind, success=True, category_id=category_id)

    def _rebuild_categories(self, flat: list[CategoryRecord]) -> None:
        self._categories = build_hierarchy(flat, self._settings)

    async def _refuse_category_change(
        self,
        kind: MutationKind,
        category_id: Optional[str],
        validation: Optional[ValidationResult],
    ) -> Optional[CategoryChangeResult]:
        if validation is not None and not validation.is_valid:
            return CategoryChangeResult(
                kind=kind,
                success=False,
                category_id=category_id,
                error_message="Category is not valid",
                issues=[issue.message for issue in validation.errors],
            )
        if not await self._gate.check(f"{kind.value}_category"):
            return CategoryChangeResult(
                kind=kind,
                success=False,
                category_id=category_id,
                error_message="Authentication required",
            )
        return None

    async def _category_changed(
        self,
        kind: MutationKind,
        category: CategoryRecord,
    ) -> CategoryChangeResult:
        await self._audit.log(AuditEventBuilder.category_changed(kind.value, category.id))
        return CategoryChangeResult(
            kind=kind,
            success=True,
            category_id=category.id,
            category=category,
        )

    async def _category_change_failed(
        self,
        kind: MutationKind,
        category_id: Optional[str],
        error: Exception,
    ) -> CategoryChangeResult:
        if isinstance(error, NotAuthenticatedError):
            await self._gate.reject(f"{kind.value}_category")

        message = str(error) or type(error).__name__
        if kind == MutationKind.DELETE and "cannot be deleted" in message.lower():
            message = CATEGORY_IN_USE_MESSAGE

        await self._audit.log(
            AuditEventBuilder.category_change_failed(kind.value, category_id, message)
        )
        return CategoryChangeResult(
            kind=kind,
            success=False,
            category_id=category_id,
            error_message=message,
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, draft: TransactionDraft) -> MutationOutcome:
        return await self._coordinator.create(draft)

    async def update(self, transaction_id: str, draft: TransactionDraft) -> MutationOutcome:
        return await self._coordinator.update(transaction_id, draft)

    async def delete(self, transaction_id: str) -> MutationOutcome:
        return await self._coordinator.delete(transaction_id)

    # =========================================================================
    # Editing
    # =========================================================================

    async def begin_edit(self, transaction_id: str) -> EditOpenResult:
        return await self._edit_sessions.begin_edit(transaction_id)

    async def cancel_edit(self) -> Optional[EditSession]:
        closed = self._edit_sessions.cancel_edit()
        if closed is not None:
            await self._audit.log_edit_closed(closed.transaction_id, "cancelled")
        return closed

    def description_tracker(
        self,
        original: Optional[TransactionRecord] = None,
    ) -> DescriptionAutoFill:
        """A description auto-fill tracker for one add / edit form."""
        return DescriptionAutoFill(self._categories, original=original)

    def category_label(
        self,
        category_id: Optional[str],
        subcategory_id: Optional[str] = None,
    ) -> str:
        return display_name(self._categories, category_id, subcategory_id)

    # =========================================================================
    # Derived reads
    # =========================================================================

    def total_for_date(self, day: date | datetime) -> Decimal:
        return self._coordinator.total_for_date(day)

    def total_for_period(self, start: date | datetime, end: date | datetime) -> Decimal:
        return total_for_period(self._collection.snapshot(), start, end)

    def totals_by_category(
        self,
        start: Optional[date | datetime] = None,
        end: Optional[date | datetime] = None,
    ) -> dict[str, Decimal]:
        return totals_by_category(self._collection.snapshot(), start, end)

    def recurring_total(self) -> Decimal:
        return recurring_total(self._collection.snapshot())


def create_app_components(
    settings: Optional[Settings] = None,
    on_not_authenticated: Optional[NotAuthenticatedHandler] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[LedgerStore, TrendApiClient, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        settings: Root settings (read from the environment if None)
        on_not_authenticated: Called whenever an operation is refused
                              because there is no session
        audit_storage: Where audit events are persisted.
                       Defaults to an in-memory store.

    Returns:
        (ledger_store, api_client, audit_logger)
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)

    api_client = TrendApiClient(settings.trend_api)
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    store = LedgerStore(
        authority=api_client,
        audit_logger=audit_logger,
        settings=settings.sync,
        on_not_authenticated=on_not_authenticated,
    )
    return store, api_client, audit_logger
