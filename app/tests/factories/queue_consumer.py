"""Factories and test doubles for queue consumer tests."""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

from queue_consumer import QueueingState, QueueingStatus

START_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_queueing_state(
    attempt_count: int = 0,
    last_attempt_time: Optional[datetime] = None,
    next_attempt_time: Optional[datetime] = START_TIME,
    status: QueueingStatus = QueueingStatus.NOT_ATTEMPTED,
    last_error: Optional[str] = None,
) -> QueueingState:
    """Create a QueueingState, due at START_TIME by default."""
    return QueueingState(
        attempt_count=attempt_count,
        last_attempt_time=last_attempt_time,
        next_attempt_time=next_attempt_time,
        status=status,
        last_error=last_error,
    )


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FixedDelayRetryPolicy:
    """Retries after a fixed delay and records every call."""

    def __init__(self, delay_seconds: int = 60):
        self.delay = timedelta(seconds=delay_seconds)
        self.calls = []

    def calculate_next_attempt_time(self, last_attempt_time, attempt_count):
        self.calls.append((last_attempt_time, attempt_count))
        return last_attempt_time + self.delay


class NeverRetryPolicy:
    def __init__(self):
        self.calls = []

    def calculate_next_attempt_time(self, last_attempt_time, attempt_count):
        self.calls.append((last_attempt_time, attempt_count))
        return None


class RecordingProcessor:
    """Processor that fails for configured item IDs."""

    def __init__(self):
        self.processed = []
        self.failing_ids = set()
        self.hook = None

    def fail_for(self, *item_ids):
        self.failing_ids.update(item_ids)

    def process(self, item_id, current_count, total_count):
        self.processed.append((item_id, current_count, total_count))
        if self.hook is not None:
            self.hook(item_id)
        if item_id in self.failing_ids:
            raise RuntimeError(f"processing of {item_id} failed")


class FailingCommitTransactions:
    """Wraps a store's transactions and fails the first N commits."""

    def __init__(self, store, failing_commits: int = 1):
        self.store = store
        self.failing_commits = failing_commits
        self.opened = 0

    @contextmanager
    def transaction(self):
        self.opened += 1
        with self.store.transaction():
            yield
            if self.failing_commits > 0:
                self.failing_commits -= 1
                raise RuntimeError("commit failed")
