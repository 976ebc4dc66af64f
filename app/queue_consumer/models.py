"""Queueing state models.

This module defines the per-item scheduling metadata mutated by the queue
consumer and persisted by the storage collaborator.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

MAX_ERROR_LENGTH = 500


def utc_now() -> datetime:
    """Default clock for the consumer and the in-memory store."""
    return datetime.now(timezone.utc)


class QueueingStatus(Enum):
    """Outcome of the most recent attempt.

    Values:
        NOT_ATTEMPTED: Item was enqueued but never processed
        SUCCESS: Last attempt completed successfully
        ERROR: Last attempt failed
    """

    NOT_ATTEMPTED = "not_attempted"
    SUCCESS = "success"
    ERROR = "error"


class ItemOutcome(Enum):
    """What happened to one item during a polling cycle."""

    SUCCEEDED = "succeeded"
    VANISHED = "vanished"
    RETRIED = "retried"
    ABANDONED = "abandoned"
    BOOKKEEPING_FAILED = "bookkeeping_failed"


@dataclass
class QueueingState:
    """Retry and scheduling metadata of one queued work item.

    Instances are owned by the storage collaborator. The consumer only holds
    a reference for the duration of a single transaction.

    Fields:
        attempt_count: Number of attempts made so far (success or failure)
        last_attempt_time: When the most recent attempt happened
        next_attempt_time: When the item becomes due again; None means it is
            not due (succeeded, or failed with no retry scheduled)
        status: Outcome of the most recent attempt
        last_error: Description of the most recent failure

    Example:
        state = QueueingState(next_attempt_time=utc_now())
        state.register_attempt_failure(utc_now(), RuntimeError("boom"))
        state.schedule_next_attempt(utc_now() + timedelta(minutes=1))
    """

    attempt_count: int = 0
    last_attempt_time: Optional[datetime] = None
    next_attempt_time: Optional[datetime] = None
    status: QueueingStatus = QueueingStatus.NOT_ATTEMPTED
    last_error: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate fields."""
        if self.attempt_count < 0:
            raise ValueError("attempt_count cannot be negative")

    def register_attempt_success(self, now: datetime) -> None:
        """Record a successful attempt; the item is no longer due."""
        self._register_attempt(now)
        self.status = QueueingStatus.SUCCESS
        self.last_error = None

    def register_attempt_failure(self, now: datetime, error: BaseException) -> None:
        """Record a failed attempt.

        The item becomes terminal unless schedule_next_attempt is called
        afterwards.
        """
        self._register_attempt(now)
        self.status = QueueingStatus.ERROR
        self.last_error = describe_error(error)

    def schedule_next_attempt(self, time: datetime) -> None:
        """Make the item due again at or after the given time."""
        self.next_attempt_time = time

    def is_due(self, now: datetime) -> bool:
        return self.next_attempt_time is not None and self.next_attempt_time <= now

    @property
    def is_terminal(self) -> bool:
        return self.next_attempt_time is None

    def _register_attempt(self, now: datetime) -> None:
        self.attempt_count += 1
        # lastAttemptTime never moves backwards
        if self.last_attempt_time is None or now > self.last_attempt_time:
            self.last_attempt_time = now
        self.next_attempt_time = None


def describe_error(error: BaseException) -> str:
    """Format an exception as a bounded diagnostic string."""
    text = f"{type(error).__name__}: {error}"
    if len(text) > MAX_ERROR_LENGTH:
        return text[:MAX_ERROR_LENGTH]
    return text
