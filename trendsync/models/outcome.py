"""
Outcome Models for Trend Sync

Every mutation and every edit-open returns a typed outcome instead of
raising. The UI decides what to show (retry affordance, login redirect,
"record no longer exists") from the status alone.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from trendsync.models.category import CategoryRecord
from trendsync.models.transaction import TransactionDraft, TransactionRecord, utc_now


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class MutationStatus(str, Enum):
    """
    Final state of one optimistic mutation.

    Idle -> Applied -> CONFIRMED, or Applied -> ROLLED_BACK.
    The remaining statuses end the mutation before or instead of a rollback.
    """
    CONFIRMED = "confirmed"                   # Backend accepted, local copy reconciled
    ROLLED_BACK = "rolled_back"               # Backend failed, local state restored
    SUPERSEDED = "superseded"                 # Backend failed, but a newer mutation owns the record
    NOT_FOUND = "not_found"                   # Backend no longer has the record
    NOT_AUTHENTICATED = "not_authenticated"   # Nothing applied, nothing sent
    INVALID = "invalid"                       # Draft failed validation, nothing applied
    REJECTED = "rejected"                     # Target is unknown or still unconfirmed


class MutationOutcome(BaseModel):
    """Result of create / update / delete as seen by the UI."""

    kind: MutationKind
    status: MutationStatus
    success: bool = Field(
        ...,
        description="True when the local collection now matches the backend's intent"
    )
    transaction_id: Optional[str] = None
    transaction: Optional[TransactionRecord] = Field(
        default=None,
        description="Backend-confirmed record (create/update) when successful"
    )
    is_new_transaction: bool = Field(
        default=False,
        description="A record was newly created (drives first-use guidance)"
    )
    error_message: Optional[str] = None
    issues: list[str] = Field(
        default_factory=list,
        description="Validation messages when status is INVALID"
    )

    @property
    def can_retry(self) -> bool:
        return self.status in (MutationStatus.ROLLED_BACK, MutationStatus.SUPERSEDED)


class EditSession(BaseModel):
    """The single record currently open for editing."""

    transaction_id: str
    snapshot: TransactionRecord
    is_stale: bool = Field(
        default=False,
        description="Snapshot came from the local cache because the backend was unreachable"
    )
    opened_at: datetime = Field(default_factory=utc_now)
    pending_draft: Optional[TransactionDraft] = Field(
        default=None,
        description="Changes from a failed save, kept so the user can retry"
    )


class EditOpenStatus(str, Enum):
    OPENED = "opened"
    OPENED_STALE = "opened_stale"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    SUPERSEDED = "superseded"                 # A later edit request or cancel took over
    NOT_AUTHENTICATED = "not_authenticated"


class EditOpenResult(BaseModel):
    """Result of asking to edit a record."""

    status: EditOpenStatus
    transaction_id: str
    session: Optional[EditSession] = None
    error_message: Optional[str] = None

    @property
    def record(self) -> Optional[TransactionRecord]:
        return self.session.snapshot if self.session else None

    @property
    def is_stale(self) -> bool:
        return self.status == EditOpenStatus.OPENED_STALE


class CategoryChangeResult(BaseModel):
    """
    Result of creating, updating or deleting a category.

    Category changes are not optimistic: the hierarchy is rebuilt only
    after the backend accepted the change.
    """

    kind: MutationKind
    success: bool
    category_id: Optional[str] = None
    category: Optional[CategoryRecord] = Field(
        default=None,
        description="The backend's copy after create / update"
    )
    error_message: Optional[str] = None
    issues: list[str] = Field(
        default_factory=list,
        description="Validation messages when the form was rejected"
    )
