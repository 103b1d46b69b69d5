"""
Optimistic Mutation Coordinator

DESIGN DECISION: Changes are applied to the local collection first and
sent to the backend second, so the list updates the moment the user
saves. Each mutation ends in exactly one of:

    Applied -> Confirmed     backend accepted; local copy replaced with its version
    Applied -> RolledBack    backend failed; local state restored

The coordinator is the only writer of the local collection. Every
remote failure is caught here and turned into a rollback plus a typed
outcome; nothing escapes to the caller and the collection is never left
half-changed.

ORDERING:
- Each mutation takes a per-record generation number. A failure whose
  generation has been overtaken by a newer mutation on the same record
  does not roll back (the newer change owns the record now).
- Successes always reconcile; the last one to come back wins.

ROLLBACK:
- The affected record goes back to its last backend-confirmed copy. When
  an older mutation on it failed without rolling back, its optimistic
  value is not what gets restored.
- If nothing else wrote to the collection since the change was applied,
  the pre-mutation snapshot is restored in full.
- Otherwise only the affected record is put back, so unrelated changes
  made meanwhile survive.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import ValidationError

from trendsync.audit import AuditLogger, create_correlation_id
from trendsync.config import SyncSettings, get_settings
from trendsync.models.audit import AuditEventBuilder
from trendsync.models.category import CategoryNode
from trendsync.models.outcome import (
    EditSession,
    MutationKind,
    MutationOutcome,
    MutationStatus,
)
from trendsync.models.transaction import TransactionDraft, TransactionRecord, utc_now
from trendsync.queries import total_for_date
from trendsync.services.remote import (
    NotAuthenticatedError,
    NotFoundError,
    RemoteAuthorityInterface,
)
from trendsync.sync.collection import (
    LocalCollection,
    generate_temporary_id,
    is_temporary_id,
)
from trendsync.sync.gate import AuthGate
from trendsync.sync.tracking import MutationTracker
from trendsync.validation import TransactionValidator

if TYPE_CHECKING:
    from trendsync.editing.session import EditSessionManager


logger = structlog.get_logger(__name__)


CategoriesProvider = Callable[[], Sequence[CategoryNode]]


class MutationCoordinator:
    """
    Applies create / update / delete optimistically and reconciles them
    with the backend.
    """

    def __init__(
        self,
        authority: RemoteAuthorityInterface,
        collection: LocalCollection,
        edit_sessions: "EditSessionManager",
        tracker: MutationTracker,
        gate: AuthGate,
        audit_logger: AuditLogger,
        validator: Optional[TransactionValidator] = None,
        categories: Optional[CategoriesProvider] = None,
        settings: Optional[SyncSettings] = None,
    ):
        """
        Args:
            authority: The backend
            collection: The local collection this coordinator owns
            edit_sessions: Edit session manager sharing the collection
            tracker: Per-record generation counters and in-flight waits
            gate: Authentication gate
            audit_logger: Audit trail
            validator: Draft validator (a default one is created if None)
            categories: Returns the current hierarchy for validation.
                        If None, category membership isn't checked.
            settings: Sync settings (temporary id prefix etc.)
        """
        self._authority = authority
        self._collection = collection
        self._edit_sessions = edit_sessions
        self._tracker = tracker
        self._gate = gate
        self._audit = audit_logger
        self._settings = settings or get_settings().sync
        self._validator = validator or TransactionValidator(self._settings)
        self._categories = categories

    @property
    def collection(self) -> LocalCollection:
        return self._collection

    # =========================================================================
    # Loading
    # =========================================================================

    async def load_transactions(self) -> bool:
        """
        Replace the collection with the backend's list.

        Records still waiting for their create call to return are kept.
        On failure the collection is left as it was.

        Returns:
            True if the collection was refreshed
        """
        if not await self._gate.check("load_transactions"):
            return False

        try:
            raw_records = await self._authority.fetch_transactions()
        except NotAuthenticatedError:
            await self._gate.reject("load_transactions")
            return False
        except Exception as e:
            await self._audit.log(AuditEventBuilder.transactions_load_failed(str(e)))
            return False

        records = []
        for raw in raw_records:
            try:
                records.append(TransactionRecord.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "transaction_record_skipped",
                    record=repr(raw)[:200],
                    errors=e.error_count(),
                )

        pending = [
            r for r in self._collection.snapshot()
            if is_temporary_id(r.id, self._settings.temp_id_prefix)
            and self._tracker.is_in_flight(r.id)
        ]
        self._collection.replace_all(records + pending)
        self._tracker.reset_confirmed(records)

        present = [r.id for r in records + pending]
        self._tracker.prune(present)
        self._edit_sessions.prune(present)
        await self._audit.log(AuditEventBuilder.transactions_loaded(len(records)))
        return True

    # =========================================================================
    # Create
    # =========================================================================

    async def create(self, draft: TransactionDraft) -> MutationOutcome:
        """
        Create a transaction optimistically.

        The speculative record carries a temporary id, which is also sent
        as clientReference so the backend's answer can be matched exactly.
        """
        kind = MutationKind.CREATE
        correlation_id = create_correlation_id()

        refused = await self._refuse(kind, None, draft, correlation_id)
        if refused is not None:
            return refused

        temp_id = generate_temporary_id(self._settings.temp_id_prefix)
        speculative = draft.to_record(temp_id, created_at=utc_now(), client_reference=temp_id)

        snapshot = self._collection.snapshot()
        generation = self._tracker.next_generation(temp_id)
        self._collection.append(speculative)
        applied_version = self._collection.version
        prior_session = self._edit_sessions.clear_after_save()
        await self._audit.log_mutation_applied(kind.value, temp_id, correlation_id)

        def put_back() -> None:
            self._collection.remove(temp_id)

        try:
            with self._tracker.in_flight(temp_id):
                try:
                    raw = await self._authority.create_transaction(
                        draft.to_payload(client_reference=temp_id)
                    )
                    confirmed = TransactionRecord.model_validate(raw)
                except Exception as e:
                    outcome = await self._roll_back(
                        kind, temp_id, generation, snapshot, applied_version,
                        put_back, e, correlation_id,
                    )
                    self._edit_sessions.restore(prior_session)
                    return outcome

                replaced_id = self._reconcile_created(temp_id, speculative, confirmed)
        finally:
            # Temporary ids are never reused
            self._tracker.discard(temp_id)

        self._tracker.confirm(confirmed)
        self._edit_sessions.note_snapshot(confirmed)
        await self._audit.log_mutation_confirmed(
            kind.value, confirmed.id, correlation_id, replaced_id=replaced_id
        )
        return MutationOutcome(
            kind=kind,
            status=MutationStatus.CONFIRMED,
            success=True,
            transaction_id=confirmed.id,
            transaction=confirmed,
            is_new_transaction=True,
        )

    def _reconcile_created(
        self,
        temp_id: str,
        speculative: TransactionRecord,
        confirmed: TransactionRecord,
    ) -> Optional[str]:
        """
        Swap the speculative record for the confirmed one.

        Looks the speculative record up by its temporary id first; if that
        is gone, falls back to any temporary record with the same
        description and amount. If nothing matches, the confirmed record
        is appended (or replaces a copy already carrying its id).

        Returns the id of the record that was replaced, if any.
        """
        prefix = self._settings.temp_id_prefix
        target = self._collection.find(temp_id) or self._collection.find_first(
            lambda r: (
                is_temporary_id(r.id, prefix)
                and r.description == speculative.description
                and r.amount == speculative.amount
            )
        )

        already_present = self._collection.find(confirmed.id) is not None

        if target is None:
            logger.warning(
                "create_reconcile_target_missing",
                temp_id=temp_id,
                confirmed_id=confirmed.id,
            )
            if already_present:
                self._collection.replace(confirmed.id, confirmed)
            else:
                self._collection.append(confirmed)
            return None

        if already_present:
            # A reload already brought in the confirmed copy
            self._collection.remove(target.id)
            self._collection.replace(confirmed.id, confirmed)
        else:
            self._collection.replace(target.id, confirmed)
        return target.id

    # =========================================================================
    # Update
    # =========================================================================

    async def update(
        self,
        transaction_id: str,
        draft: TransactionDraft,
    ) -> MutationOutcome:
        """
        Update a transaction optimistically.

        On failure the previous record and the edit session come back,
        with the attempted changes kept on the session for a retry.
        """
        kind = MutationKind.UPDATE
        correlation_id = create_correlation_id()

        refused = await self._refuse(kind, transaction_id, draft, correlation_id)
        if refused is not None:
            return refused

        previous = self._collection.find(transaction_id)
        restore_to = self._tracker.confirmed(transaction_id) or previous

        snapshot = self._rollback_snapshot(transaction_id, restore_to)
        generation = self._tracker.next_generation(transaction_id)
        self._collection.replace(transaction_id, draft.apply_to(previous, updated_at=utc_now()))
        applied_version = self._collection.version
        prior_session = self._edit_sessions.clear_after_save()
        await self._audit.log_mutation_applied(kind.value, transaction_id, correlation_id)

        def put_back() -> None:
            self._collection.replace(transaction_id, restore_to)

        with self._tracker.in_flight(transaction_id):
            try:
                raw = await self._authority.update_transaction(
                    transaction_id, draft.to_payload()
                )
                confirmed = TransactionRecord.model_validate(raw)
            except NotFoundError as e:
                outcome = await self._roll_back(
                    kind, transaction_id, generation, snapshot, applied_version,
                    put_back, e, correlation_id,
                )
                if outcome.status == MutationStatus.ROLLED_BACK:
                    outcome = outcome.model_copy(update={"status": MutationStatus.NOT_FOUND})
                return outcome
            except Exception as e:
                outcome = await self._roll_back(
                    kind, transaction_id, generation, snapshot, applied_version,
                    put_back, e, correlation_id,
                )
                if outcome.status != MutationStatus.SUPERSEDED:
                    self._edit_sessions.restore(
                        self._retry_session(transaction_id, restore_to, draft, prior_session)
                    )
                return outcome

            if self._collection.replace(transaction_id, confirmed) is None:
                logger.warning("update_target_gone", transaction_id=transaction_id)

        self._tracker.confirm(confirmed)
        self._edit_sessions.note_snapshot(confirmed)
        await self._audit.log_mutation_confirmed(kind.value, transaction_id, correlation_id)
        return MutationOutcome(
            kind=kind,
            status=MutationStatus.CONFIRMED,
            success=True,
            transaction_id=transaction_id,
            transaction=confirmed,
        )

    @staticmethod
    def _retry_session(
        transaction_id: str,
        previous: TransactionRecord,
        draft: TransactionDraft,
        prior_session: Optional[EditSession],
    ) -> EditSession:
        is_stale = (
            prior_session is not None
            and prior_session.transaction_id == transaction_id
            and prior_session.is_stale
        )
        return EditSession(
            transaction_id=transaction_id,
            snapshot=previous,
            is_stale=is_stale,
            pending_draft=draft,
        )

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete(self, transaction_id: str) -> MutationOutcome:
        """
        Delete a transaction optimistically.

        If the backend no longer has the record, the deletion stands.
        On any other failure the record goes back to its original position.
        """
        kind = MutationKind.DELETE
        correlation_id = create_correlation_id()

        refused = await self._refuse(kind, transaction_id, None, correlation_id)
        if refused is not None:
            return refused

        restore_to = (
            self._tracker.confirmed(transaction_id)
            or self._collection.find(transaction_id)
        )
        snapshot = self._rollback_snapshot(transaction_id, restore_to)
        generation = self._tracker.next_generation(transaction_id)
        index, _ = self._collection.remove(transaction_id)
        applied_version = self._collection.version
        prior_session = self._edit_sessions.forget(transaction_id)
        await self._audit.log_mutation_applied(kind.value, transaction_id, correlation_id)

        def put_back() -> None:
            if self._collection.find(transaction_id) is None:
                self._collection.insert(index, restore_to)

        status = MutationStatus.CONFIRMED
        with self._tracker.in_flight(transaction_id):
            try:
                await self._authority.delete_transaction(transaction_id)
            except NotFoundError:
                status = MutationStatus.NOT_FOUND
            except Exception as e:
                outcome = await self._roll_back(
                    kind, transaction_id, generation, snapshot, applied_version,
                    put_back, e, correlation_id,
                )
                if outcome.status != MutationStatus.SUPERSEDED:
                    self._edit_sessions.restore(prior_session)
                return outcome

        self._tracker.discard(transaction_id)
        await self._audit.log_mutation_confirmed(kind.value, transaction_id, correlation_id)
        return MutationOutcome(
            kind=kind,
            status=status,
            success=True,
            transaction_id=transaction_id,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def total_for_date(self, day: date | datetime) -> Decimal:
        """Total of the current collection (optimistic state included) for one day."""
        return total_for_date(self._collection.snapshot(), day)

    # =========================================================================
    # Shared steps
    # =========================================================================

    async def _refuse(
        self,
        kind: MutationKind,
        transaction_id: Optional[str],
        draft: Optional[TransactionDraft],
        correlation_id: UUID,
    ) -> Optional[MutationOutcome]:
        """
        Run every check that must pass before anything is applied.

        Returns the outcome to hand back if the mutation can't go ahead,
        or None if it may proceed.
        """
        if not await self._gate.check(f"{kind.value}_transaction"):
            return MutationOutcome(
                kind=kind,
                status=MutationStatus.NOT_AUTHENTICATED,
                success=False,
                transaction_id=transaction_id,
                error_message="Authentication required",
            )

        if draft is not None:
            hierarchy = self._categories() if self._categories else None
            result = self._validator.validate(draft, hierarchy=hierarchy)
            if not result.is_valid:
                messages = [issue.message for issue in result.errors]
                await self._audit.log_mutation_rejected(
                    kind.value, transaction_id, "; ".join(messages), correlation_id
                )
                return MutationOutcome(
                    kind=kind,
                    status=MutationStatus.INVALID,
                    success=False,
                    transaction_id=transaction_id,
                    error_message="Transaction is not valid",
                    issues=messages,
                )

        if transaction_id is None:
            return None

        reason = None
        if is_temporary_id(transaction_id, self._settings.temp_id_prefix):
            reason = "Transaction has not been saved yet"
        elif self._collection.find(transaction_id) is None:
            reason = "Transaction not found"

        if reason is None:
            return None

        await self._audit.log_mutation_rejected(kind.value, transaction_id, reason, correlation_id)
        return MutationOutcome(
            kind=kind,
            status=MutationStatus.REJECTED,
            success=False,
            transaction_id=transaction_id,
            error_message=reason,
        )

    def _rollback_snapshot(
        self,
        transaction_id: str,
        restore_to: Optional[TransactionRecord],
    ) -> tuple[TransactionRecord, ...]:
        """The current collection with this record at its last confirmed state."""
        return tuple(
            restore_to if r.id == transaction_id and restore_to is not None else r
            for r in self._collection.snapshot()
        )

    async def _roll_back(
        self,
        kind: MutationKind,
        transaction_id: str,
        generation: int,
        snapshot: tuple[TransactionRecord, ...],
        applied_version: int,
        put_back: Callable[[], None],
        error: Exception,
        correlation_id: UUID,
    ) -> MutationOutcome:
        """
        Undo an applied change after the backend call failed.

        Skipped entirely when a newer mutation on the same record exists.
        """
        if isinstance(error, NotAuthenticatedError):
            await self._gate.reject(f"{kind.value}_transaction")

        current = self._tracker.current(transaction_id)
        if current != generation:
            await self._audit.log_rollback_superseded(
                kind.value, transaction_id, generation, current, correlation_id
            )
            return MutationOutcome(
                kind=kind,
                status=MutationStatus.SUPERSEDED,
                success=False,
                transaction_id=transaction_id,
                error_message=str(error),
            )

        if self._collection.version == applied_version:
            self._collection.restore(snapshot)
        else:
            put_back()

        await self._audit.log_mutation_rolled_back(
            kind.value, transaction_id, str(error), correlation_id
        )
        status = (
            MutationStatus.NOT_AUTHENTICATED
            if isinstance(error, NotAuthenticatedError)
            else MutationStatus.ROLLED_BACK
        )
        return MutationOutcome(
            kind=kind,
            status=status,
            success=False,
            transaction_id=transaction_id,
            error_message=str(error),
        )

