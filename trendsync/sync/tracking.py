"""
Mutation Tracking

Per-record bookkeeping for mutations in flight:
- A generation counter per id. Each mutation takes the next generation;
  a failure may only roll back if its generation is still the latest.
  This keeps a slow failure from undoing a newer, already applied change.
- The last backend-confirmed copy of each record. A rollback restores
  this copy, never an optimistic value an older, failed mutation left
  behind when its own rollback was skipped.
- An in-flight count per id, so an edit can wait until the record has
  settled before fetching it.
"""

import asyncio
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from trendsync.models.transaction import TransactionRecord


class MutationTracker:
    """Generation counters, confirmed copies and in-flight waits, keyed by transaction id."""

    def __init__(self):
        self._generations: dict[str, int] = {}
        self._confirmed: dict[str, TransactionRecord] = {}
        self._in_flight: dict[str, int] = {}
        self._settled: dict[str, asyncio.Event] = {}

    # ------------------------------------------------------------------
    # Generations
    # ------------------------------------------------------------------

    def next_generation(self, transaction_id: str) -> int:
        generation = self._generations.get(transaction_id, 0) + 1
        self._generations[transaction_id] = generation
        return generation

    def current(self, transaction_id: str) -> int:
        return self._generations.get(transaction_id, 0)

    def is_current(self, transaction_id: str, generation: int) -> bool:
        return self.current(transaction_id) == generation

    # ------------------------------------------------------------------
    # Confirmed copies
    # ------------------------------------------------------------------

    def confirm(self, record: TransactionRecord) -> None:
        """Remember the backend's copy of a record."""
        self._confirmed[record.id] = record

    def confirmed(self, transaction_id: str) -> Optional[TransactionRecord]:
        return self._confirmed.get(transaction_id)

    def reset_confirmed(self, records: Iterable[TransactionRecord]) -> None:
        """Replace every confirmed copy with a freshly loaded list."""
        self._confirmed = {r.id: r for r in records}

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def discard(self, transaction_id: str) -> None:
        """Forget an id for good. Ignored while a mutation on it is in flight."""
        if transaction_id in self._in_flight:
            return
        self._generations.pop(transaction_id, None)
        self._confirmed.pop(transaction_id, None)

    def prune(self, keep_ids: Iterable[str]) -> None:
        """Forget every id not in keep_ids and not in flight."""
        keep = set(keep_ids) | set(self._in_flight)
        self._generations = {k: v for k, v in self._generations.items() if k in keep}
        self._confirmed = {k: v for k, v in self._confirmed.items() if k in keep}

    # ------------------------------------------------------------------
    # In flight
    # ------------------------------------------------------------------

    def is_in_flight(self, transaction_id: str) -> bool:
        return transaction_id in self._in_flight

    def begin(self, transaction_id: str) -> None:
        self._in_flight[transaction_id] = self._in_flight.get(transaction_id, 0) + 1
        if transaction_id not in self._settled:
            self._settled[transaction_id] = asyncio.Event()

    def finish(self, transaction_id: str) -> None:
        remaining = self._in_flight.get(transaction_id, 0) - 1
        if remaining > 0:
            self._in_flight[transaction_id] = remaining
            return
        self._in_flight.pop(transaction_id, None)
        event = self._settled.pop(transaction_id, None)
        if event is not None:
            event.set()

    @contextmanager
    def in_flight(self, transaction_id: str) -> Iterator[None]:
        """Mark a remote call on this id as in flight for the duration of the block."""
        self.begin(transaction_id)
        try:
            yield
        finally:
            self.finish(transaction_id)

    async def wait_for_settled(self, transaction_id: str) -> None:
        """Return once no mutation on this id is in flight."""
        while transaction_id in self._in_flight:
            await self._settled[transaction_id].wait()
