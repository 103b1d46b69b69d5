"""
Local Transaction Collection

DESIGN DECISION: The list of transactions the UI shows is an explicitly
owned state object with a single writer (the mutation coordinator).
Readers only ever get snapshots: tuples of frozen records. A snapshot
taken before an await is never changed by writes that happen after it.

Every write bumps `version`, so a writer can tell whether anything else
touched the collection between two points in time.
"""

import time
from typing import Callable, Iterable, Iterator, Optional
from uuid import uuid4

from trendsync.models.transaction import TransactionRecord


def generate_temporary_id(prefix: str) -> str:
    """
    Generate an id for a record the backend hasn't confirmed yet.

    Format: <prefix><epoch-ms>_<random>. The prefix keeps it
    distinguishable from backend ids.
    """
    return f"{prefix}{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def is_temporary_id(transaction_id: Optional[str], prefix: str) -> bool:
    return bool(transaction_id) and transaction_id.startswith(prefix)


class LocalCollection:
    """Ordered, single-writer collection of transaction records."""

    def __init__(self, records: Iterable[TransactionRecord] = ()):
        self._records: list[TransactionRecord] = list(records)
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def _touch(self) -> None:
        self._version += 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[TransactionRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(self.snapshot())

    def find(self, transaction_id: str) -> Optional[TransactionRecord]:
        index = self.index_of(transaction_id)
        return None if index is None else self._records[index]

    def find_first(
        self,
        predicate: Callable[[TransactionRecord], bool],
    ) -> Optional[TransactionRecord]:
        for record in self._records:
            if predicate(record):
                return record
        return None

    def index_of(self, transaction_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == transaction_id:
                return index
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, record: TransactionRecord) -> None:
        self._records.append(record)
        self._touch()

    def insert(self, index: int, record: TransactionRecord) -> None:
        """Insert at index, clamped to the current bounds."""
        index = max(0, min(index, len(self._records)))
        self._records.insert(index, record)
        self._touch()

    def replace(
        self,
        transaction_id: str,
        record: TransactionRecord,
    ) -> Optional[TransactionRecord]:
        """
        Swap the record with the given id for a new one, in place.

        Returns the replaced record, or None (and changes nothing) if
        no record has that id.
        """
        index = self.index_of(transaction_id)
        if index is None:
            return None
        previous = self._records[index]
        self._records[index] = record
        self._touch()
        return previous

    def remove(self, transaction_id: str) -> Optional[tuple[int, TransactionRecord]]:
        """Remove by id. Returns (original index, record) or None."""
        index = self.index_of(transaction_id)
        if index is None:
            return None
        record = self._records.pop(index)
        self._touch()
        return index, record

    def restore(self, snapshot: Iterable[TransactionRecord]) -> None:
        """Put back a snapshot taken earlier, exactly as it was."""
        self._records = list(snapshot)
        self._touch()

    def replace_all(self, records: Iterable[TransactionRecord]) -> None:
        self._records = list(records)
        self._touch()
