"""
Edit Session Manager

DESIGN DECISION: Opening a record for editing always asks the backend
for its canonical copy. The locally cached copy is only a fallback for
when the backend can't be reached, and is then flagged as possibly stale.

GUARANTEES:
- At most one record is open for editing at a time
- The snapshot shown is never older than the newest one fetched or saved
  for that id during this session
- An edit never opens while a mutation on the same record is in flight
- When two open requests overlap, only the latest one installs its session
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

from trendsync.audit import AuditLogger
from trendsync.config import SyncSettings, get_settings
from trendsync.models.outcome import EditOpenResult, EditOpenStatus, EditSession
from trendsync.models.transaction import TransactionRecord
from trendsync.services.remote import (
    NotAuthenticatedError,
    NotFoundError,
    RemoteAuthorityInterface,
)
from trendsync.sync.collection import LocalCollection, is_temporary_id
from trendsync.sync.gate import AuthGate
from trendsync.sync.tracking import MutationTracker


logger = structlog.get_logger(__name__)


def _comparable(moment: datetime) -> datetime:
    # Naive timestamps are taken as UTC so they compare with aware ones
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def newest(
    candidate: Optional[TransactionRecord],
    known: Optional[TransactionRecord],
) -> Optional[TransactionRecord]:
    """Pick the more recently modified record; ties go to candidate."""
    if candidate is None:
        return known
    if known is None:
        return candidate
    if _comparable(known.last_modified) > _comparable(candidate.last_modified):
        return known
    return candidate


class EditSessionManager:
    """
    Tracks the single record currently open for editing.

    Shares the local collection and mutation tracker with the
    coordinator, but never writes to the collection.
    """

    def __init__(
        self,
        authority: RemoteAuthorityInterface,
        collection: LocalCollection,
        tracker: MutationTracker,
        gate: AuthGate,
        audit_logger: AuditLogger,
        settings: Optional[SyncSettings] = None,
    ):
        self._authority = authority
        self._collection = collection
        self._tracker = tracker
        self._gate = gate
        self._audit = audit_logger
        self._settings = settings or get_settings().sync

        self._session: Optional[EditSession] = None
        self._latest: dict[str, TransactionRecord] = {}
        self._request_seq = 0

    async def begin_edit(self, transaction_id: str) -> EditOpenResult:
        """
        Open a record for editing.

        Waits for in-flight mutations on the record, then fetches the
        backend copy. Falls back to the local copy (flagged stale) when
        the backend can't be reached.
        """
        self._request_seq += 1
        request = self._request_seq

        if is_temporary_id(transaction_id, self._settings.temp_id_prefix):
            await self._audit.log_edit_not_found(transaction_id, "not_yet_saved")
            return EditOpenResult(
                status=EditOpenStatus.NOT_FOUND,
                transaction_id=transaction_id,
                error_message="Transaction has not been saved yet",
            )

        if not await self._gate.check("begin_edit"):
            return EditOpenResult(
                status=EditOpenStatus.NOT_AUTHENTICATED,
                transaction_id=transaction_id,
                error_message="Authentication required",
            )

        await self._tracker.wait_for_settled(transaction_id)

        is_stale = False
        try:
            raw = await self._authority.fetch_transaction_by_id(transaction_id)
            fetched: Optional[TransactionRecord] = TransactionRecord.model_validate(raw)
        except NotFoundError as e:
            if request == self._request_seq:
                self._session = None
            self._latest.pop(transaction_id, None)
            await self._audit.log_edit_not_found(transaction_id, "deleted_remotely")
            return EditOpenResult(
                status=EditOpenStatus.NOT_FOUND,
                transaction_id=transaction_id,
                error_message=str(e),
            )
        except NotAuthenticatedError as e:
            await self._gate.reject("begin_edit")
            return EditOpenResult(
                status=EditOpenStatus.NOT_AUTHENTICATED,
                transaction_id=transaction_id,
                error_message=str(e),
            )
        except Exception as e:
            # Timeouts and unreadable bodies included: fall back to the cache
            fetch_error = str(e) or type(e).__name__
            logger.warning(
                "edit_fetch_failed",
                transaction_id=transaction_id,
                error=fetch_error,
            )
            fetched = None
            is_stale = True

        record = newest(fetched, self._latest.get(transaction_id))
        if is_stale:
            record = newest(self._collection.find(transaction_id), record)
            if record is None:
                return EditOpenResult(
                    status=EditOpenStatus.UNAVAILABLE,
                    transaction_id=transaction_id,
                    error_message=fetch_error,
                )

        self._latest[transaction_id] = record

        if request != self._request_seq:
            return EditOpenResult(
                status=EditOpenStatus.SUPERSEDED,
                transaction_id=transaction_id,
                error_message="A newer edit request took over",
            )

        self._session = EditSession(
            transaction_id=transaction_id,
            snapshot=record,
            is_stale=is_stale,
        )
        await self._audit.log_edit_opened(transaction_id, is_stale)
        return EditOpenResult(
            status=EditOpenStatus.OPENED_STALE if is_stale else EditOpenStatus.OPENED,
            transaction_id=transaction_id,
            session=self._session,
        )

    def current_edit(self) -> Optional[EditSession]:
        return self._session

    def cancel_edit(self) -> Optional[EditSession]:
        """Close the session without saving. Returns the closed session."""
        return self._close("cancelled")

    def clear_after_save(self) -> Optional[EditSession]:
        """Close the session because its changes were submitted."""
        return self._close("saved")

    def _close(self, reason: str) -> Optional[EditSession]:
        # Pending opens must not reinstall a session after this
        self._request_seq += 1
        closed, self._session = self._session, None
        if closed is not None:
            logger.debug("edit_closed", transaction_id=closed.transaction_id, reason=reason)
        return closed

    def restore(self, session: Optional[EditSession]) -> bool:
        """
        Put a session back after a failed save.

        Does nothing if the user has opened another edit meanwhile.
        """
        if session is None or self._session is not None:
            return False
        self._session = session
        return True

    def note_snapshot(self, record: TransactionRecord) -> None:
        """Remember a backend-confirmed copy as the newest known for its id."""
        self._latest[record.id] = record
        if self._session is not None and self._session.transaction_id == record.id:
            self._session = self._session.model_copy(update={"snapshot": record})

    def prune(self, present_ids: Iterable[str]) -> None:
        """Drop remembered snapshots of records that are no longer loaded."""
        keep = set(present_ids)
        self._latest = {k: v for k, v in self._latest.items() if k in keep}

    def forget(self, transaction_id: str) -> Optional[EditSession]:
        """
        Drop everything known about a record that no longer exists.

        Returns the session that was open on it, if any.
        """
        self._latest.pop(transaction_id, None)
        if self._session is not None and self._session.transaction_id == transaction_id:
            return self._close("deleted")
        return None
