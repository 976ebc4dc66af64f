"""Test data factories for deterministic test data generation."""

from tests.factories.queue_consumer import (
    START_TIME,
    FailingCommitTransactions,
    FakeClock,
    FixedDelayRetryPolicy,
    NeverRetryPolicy,
    RecordingProcessor,
    make_queueing_state,
)

__all__ = [
    "START_TIME",
    "FailingCommitTransactions",
    "FakeClock",
    "FixedDelayRetryPolicy",
    "NeverRetryPolicy",
    "RecordingProcessor",
    "make_queueing_state",
]
