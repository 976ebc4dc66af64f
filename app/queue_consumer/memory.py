"""In-memory queue store and consumer module.

Reference collaborators for development and tests. The store keeps queueing
states in a dictionary and implements TransactionManager by journaling every
state it hands out during a transaction and restoring the journal if the
transaction block raises.

This implementation is meant for development, tests and single-process
deployments. Production deployments back QueueConsumerModule and
TransactionManager with their own database.
"""

import copy
import itertools
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Generator, Generic, List, Optional, Protocol, Tuple

from queue_consumer.logging import get_module_logger
from queue_consumer.models import QueueingState, QueueingStatus, utc_now
from queue_consumer.module import ID

logger = get_module_logger()

# Saved (state, insertion sequence) of one item; None if it did not exist
_JournalEntry = Optional[Tuple[QueueingState, int]]


class InMemoryQueueStore(Generic[ID]):
    """Thread-safe in-memory store of queueing states.

    Transactions hold a re-entrant lock for their whole duration, so readers
    outside a transaction never observe a half-updated state.

    Rollback covers states obtained from the store inside the transaction
    (get_queueing_state, enqueue, remove). A state reference kept from before
    the transaction must be looked up again to be rolled back.

    Args:
        clock: Returns the current timezone-aware time (default: utc_now)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.clock = clock or utc_now
        self._states: Dict[ID, QueueingState] = {}
        self._sequence: Dict[ID, int] = {}
        self._counter = itertools.count()
        self._journal: Optional[Dict[ID, _JournalEntry]] = None
        self._lock = threading.RLock()

    def enqueue(
        self, item_id: ID, next_attempt_time: Optional[datetime] = None
    ) -> QueueingState:
        """Add a new item, due at next_attempt_time (default: now).

        Raises:
            ValueError: If the item is already queued
        """
        with self._lock:
            if item_id in self._states:
                raise ValueError(f"Item {item_id!r} is already queued")
            self._record(item_id)
            state = QueueingState(next_attempt_time=next_attempt_time or self.clock())
            self._states[item_id] = state
            self._sequence[item_id] = next(self._counter)
            logger.info(
                "queued_item_enqueued",
                item_id=item_id,
                next_attempt_time=state.next_attempt_time.isoformat(),
            )
            return state

    def remove(self, item_id: ID) -> bool:
        """Delete an item. Returns False if it was not queued."""
        with self._lock:
            self._record(item_id)
            self._sequence.pop(item_id, None)
            return self._states.pop(item_id, None) is not None

    def find_due_item_ids(self, now: datetime, limit: int) -> List[ID]:
        """Return IDs of due items, earliest next attempt time first."""
        with self._lock:
            due = [
                (state.next_attempt_time, self._sequence[item_id], item_id)
                for item_id, state in self._states.items()
                if state.is_due(now)
            ]
            due.sort(key=lambda entry: (entry[0], entry[1]))
            item_ids = [item_id for _, _, item_id in due[:limit]]

            logger.debug(
                "fetched_due_queued_items",
                count=len(item_ids),
                total_store_size=len(self._states),
            )
            return item_ids

    def get_queueing_state(self, item_id: ID) -> Optional[QueueingState]:
        with self._lock:
            self._record(item_id)
            return self._states.get(item_id)

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Run the block atomically, restoring touched states if it raises.

        A nested transaction joins the enclosing one.
        """
        with self._lock:
            if self._journal is not None:
                yield
                return

            self._journal = {}
            try:
                yield
            except BaseException:
                self._restore(self._journal)
                logger.debug("in_memory_transaction_rolled_back")
                raise
            finally:
                self._journal = None

    def _record(self, item_id: ID) -> None:
        # Only called with the lock held, so a journal belongs to this thread
        if self._journal is None or item_id in self._journal:
            return
        state = self._states.get(item_id)
        if state is None:
            self._journal[item_id] = None
        else:
            self._journal[item_id] = (copy.deepcopy(state), self._sequence[item_id])

    def _restore(self, journal: Dict[ID, _JournalEntry]) -> None:
        # Restore in place so references handed out during the transaction
        # stay attached to the store.
        for item_id, saved in journal.items():
            if saved is None:
                self._states.pop(item_id, None)
                self._sequence.pop(item_id, None)
                continue
            saved_state, sequence = saved
            current = self._states.get(item_id)
            if current is None:
                self._states[item_id] = saved_state
            else:
                current.__dict__.update(saved_state.__dict__)
            self._sequence[item_id] = sequence

    def get_stats(self, now: Optional[datetime] = None) -> dict:
        """Get queue statistics.

        Returns:
            Dictionary with counts of total, due, succeeded, failed and
            terminal items
        """
        now = now or self.clock()
        with self._lock:
            states = list(self._states.values())
            return {
                "total": len(states),
                "due": sum(1 for s in states if s.is_due(now)),
                "succeeded": sum(1 for s in states if s.status is QueueingStatus.SUCCESS),
                "failed": sum(1 for s in states if s.status is QueueingStatus.ERROR),
                "terminal": sum(1 for s in states if s.is_terminal),
            }


class ItemProcessor(Protocol[ID]):
    """Protocol for the domain work performed on one in-memory item."""

    def process(self, item_id: ID, current_count: int, total_count: int) -> None:
        """Process an item; raise to mark the attempt as failed."""
        ...


class InMemoryQueueConsumerModule(Generic[ID]):
    """QueueConsumerModule backed by an InMemoryQueueStore.

    Example:
        store = InMemoryQueueStore()
        module = InMemoryQueueConsumerModule(store, EmailSender())
        consumer = QueueConsumer(module, retry_policy, store, 10, 60)
    """

    def __init__(self, store: InMemoryQueueStore[ID], processor: ItemProcessor[ID]) -> None:
        self.store = store
        self.processor = processor

    def find_due_item_ids(self, now: datetime, limit: int) -> List[ID]:
        return self.store.find_due_item_ids(now, limit)

    def get_queueing_state(self, item_id: ID) -> Optional[QueueingState]:
        return self.store.get_queueing_state(item_id)

    def process_item(
        self, item_id: ID, current_count: int, total_count: int
    ) -> Optional[QueueingState]:
        state = self.store.get_queueing_state(item_id)
        if state is None:
            return None
        self.processor.process(item_id, current_count, total_count)
        return state
