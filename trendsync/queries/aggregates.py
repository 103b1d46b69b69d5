"""
Derived Reads over the Local Collection

DESIGN DECISION: Aggregates are recomputed from the records passed in on
every call. Nothing is cached, so totals always include optimistic
changes that are still waiting for the backend.

Dates are compared as calendar days on the device's local calendar:
timezone-aware timestamps are converted to local time first, naive
ones are taken as already local.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from trendsync.models.transaction import Recurrence, TransactionRecord, TransactionType


def local_day(moment: datetime) -> date:
    """The local calendar day a timestamp falls on."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def _as_day(day: date | datetime) -> date:
    return local_day(day) if isinstance(day, datetime) else day


def _matches_type(record: TransactionRecord, transaction_type: Optional[TransactionType]) -> bool:
    return transaction_type is None or record.transaction_type == transaction_type


def total_for_date(
    records: Iterable[TransactionRecord],
    day: date | datetime,
    transaction_type: Optional[TransactionType] = None,
) -> Decimal:
    """
    Sum of amounts of records dated on exactly this calendar day.

    Args:
        records: Records to sum (usually a collection snapshot)
        day: The day to total; a datetime is reduced to its local day
        transaction_type: Only count this type (all types when None)
    """
    target = _as_day(day)
    return sum(
        (r.amount for r in records
         if local_day(r.date) == target and _matches_type(r, transaction_type)),
        Decimal("0"),
    )


def total_for_period(
    records: Iterable[TransactionRecord],
    start: date | datetime,
    end: date | datetime,
    transaction_type: Optional[TransactionType] = None,
) -> Decimal:
    """Sum of amounts dated between start and end, both days inclusive."""
    first, last = _as_day(start), _as_day(end)
    return sum(
        (r.amount for r in records
         if first <= local_day(r.date) <= last and _matches_type(r, transaction_type)),
        Decimal("0"),
    )


def totals_by_category(
    records: Iterable[TransactionRecord],
    start: Optional[date | datetime] = None,
    end: Optional[date | datetime] = None,
) -> dict[str, Decimal]:
    """
    Sum of amounts per category id, optionally within an inclusive day range.

    Subcategory spending counts toward its top-level category.
    """
    first = _as_day(start) if start is not None else None
    last = _as_day(end) if end is not None else None

    totals: dict[str, Decimal] = {}
    for record in records:
        day = local_day(record.date)
        if first is not None and day < first:
            continue
        if last is not None and day > last:
            continue
        totals[record.category_id] = totals.get(record.category_id, Decimal("0")) + record.amount
    return totals


def recurring_total(records: Iterable[TransactionRecord]) -> Decimal:
    """Sum of every record that repeats (recurrence other than none)."""
    return sum(
        (r.amount for r in records if r.recurrence != Recurrence.NONE),
        Decimal("0"),
    )
