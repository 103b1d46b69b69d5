"""
Transaction Models for Trend Sync

These models define the schemas for transaction data flowing between
the local collection and the Trend backend. They are designed to:
1. Enforce type safety at runtime
2. Speak the backend's camelCase wire format
3. Stay immutable, so a snapshot handed to a reader never changes

DESIGN DECISION: Records are frozen Pydantic models.
Every local change produces a new record object; the old one remains
valid inside any snapshot that was taken before the change.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class Recurrence(str, Enum):
    """How often a transaction repeats."""
    NONE = "none"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    SEMI_ANNUAL = "sixmonths"
    YEARLY = "yearly"


class TransactionType(str, Enum):
    """Direction of money flow. The app records expenses by default."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_identifier(v: Any) -> Optional[str]:
    """Backends hand out numeric or string ids; locally they are strings."""
    if v is None or v == "":
        return None
    return str(v)


class TransactionRecord(BaseModel):
    """
    A transaction as held in the local collection.

    The id is either assigned by the backend (permanent) or generated
    locally with the temporary prefix while the create call is in flight.
    A temporary record is never canonical: it gets replaced, not merged,
    once the backend answers.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Backend id, or a temporary id for unconfirmed records"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount, never negative"
    )
    description: str = Field(
        default="",
        description="Free text, often derived from the category name"
    )
    category_id: str = Field(
        ...,
        description="Top-level category id"
    )
    subcategory_id: Optional[str] = Field(
        default=None,
        description="Subcategory id under category_id"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened"
    )
    recurrence: Recurrence = Recurrence.NONE
    transaction_type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        alias="type",
    )

    # Timestamps (backend owned)
    created_at: datetime = Field(
        default_factory=utc_now,
        description="Creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        description="Set once the record has been edited at least once"
    )

    # Temporary id echoed back by the backend on create
    client_reference: Optional[str] = None

    @field_validator('id', 'category_id', mode='before')
    @classmethod
    def coerce_required_identifier(cls, v: Any) -> Any:
        return as_identifier(v) if v is not None else v

    @field_validator('subcategory_id', 'client_reference', mode='before')
    @classmethod
    def coerce_optional_identifier(cls, v: Any) -> Optional[str]:
        return as_identifier(v)

    @field_validator('description', mode='before')
    @classmethod
    def null_description_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('recurrence', mode='before')
    @classmethod
    def missing_recurrence_is_none(cls, v: Any) -> Any:
        return v or Recurrence.NONE

    @property
    def last_modified(self) -> datetime:
        """Newest timestamp the record carries."""
        return self.updated_at or self.created_at

    def has_temporary_id(self, prefix: str) -> bool:
        return self.id.startswith(prefix)


class TransactionDraft(BaseModel):
    """
    The editable fields of a transaction, as entered in the form.

    Drafts carry no id and no timestamps; the backend assigns those.
    Amount is deliberately unconstrained here so the validator can
    report a negative amount instead of failing construction.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    amount: Decimal
    description: str = ""
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    date: datetime = Field(default_factory=utc_now)
    recurrence: Recurrence = Recurrence.NONE
    transaction_type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        alias="type",
    )

    @field_validator('category_id', 'subcategory_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v: Any) -> Optional[str]:
        return as_identifier(v)

    @field_serializer('amount', when_used='json')
    def amount_as_number(self, v: Decimal) -> float:
        return float(v)

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionDraft":
        """Start a draft from an existing record (edit form pre-fill)."""
        return cls(
            amount=record.amount,
            description=record.description,
            category_id=record.category_id,
            subcategory_id=record.subcategory_id,
            date=record.date,
            recurrence=record.recurrence,
            transaction_type=record.transaction_type,
        )

    def to_payload(self, client_reference: Optional[str] = None) -> dict:
        """
        Serialize for the backend.

        The payload never contains an id or timestamps. When a client
        reference is given it is sent along so the backend can echo it.
        """
        payload = self.model_dump(mode="json", by_alias=True)
        if client_reference:
            payload["clientReference"] = client_reference
        return payload

    def to_record(
        self,
        record_id: str,
        created_at: datetime,
        client_reference: Optional[str] = None,
    ) -> TransactionRecord:
        """Build the speculative record inserted before the backend confirms."""
        return TransactionRecord(
            id=record_id,
            amount=self.amount,
            description=self.description,
            category_id=self.category_id,
            subcategory_id=self.subcategory_id,
            date=self.date,
            recurrence=self.recurrence,
            transaction_type=self.transaction_type,
            created_at=created_at,
            client_reference=client_reference,
        )

    def apply_to(
        self,
        record: TransactionRecord,
        updated_at: datetime,
    ) -> TransactionRecord:
        """Return a copy of record with this draft's fields and a new update stamp."""
        return record.model_copy(update={
            "amount": self.amount,
            "description": self.description,
            "category_id": self.category_id,
            "subcategory_id": self.subcategory_id,
            "date": self.date,
            "recurrence": self.recurrence,
            "transaction_type": self.transaction_type,
            "updated_at": updated_at,
        })
