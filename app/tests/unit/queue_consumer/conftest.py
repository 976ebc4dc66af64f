"""Shared fixtures for queue consumer tests."""

from datetime import timedelta

import pytest

from queue_consumer import (
    InMemoryQueueConsumerModule,
    InMemoryQueueStore,
    QueueConsumer,
)
from tests.factories.queue_consumer import (
    FailingCommitTransactions,
    FakeClock,
    FixedDelayRetryPolicy,
    NeverRetryPolicy,
    RecordingProcessor,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def retry_policy():
    """Retry policy scheduling the next attempt 60 seconds later."""
    return FixedDelayRetryPolicy()


@pytest.fixture
def never_retry_policy():
    return NeverRetryPolicy()


@pytest.fixture
def store(clock):
    """Create a fresh InMemoryQueueStore on the fake clock."""
    return InMemoryQueueStore(clock=clock)


@pytest.fixture
def failing_commit_transactions(store):
    """Factory for transaction managers whose first commits fail."""

    def _factory(failing_commits: int = 1) -> FailingCommitTransactions:
        return FailingCommitTransactions(store, failing_commits)

    return _factory


@pytest.fixture
def processor():
    return RecordingProcessor()


@pytest.fixture
def module(store, processor):
    return InMemoryQueueConsumerModule(store, processor)


@pytest.fixture
def enqueue_items(store, clock):
    """Enqueue items that are due at the current fake time."""

    def _enqueue(*item_ids, delay_seconds: float = 0):
        for item_id in item_ids:
            store.enqueue(
                item_id,
                next_attempt_time=clock() + timedelta(seconds=delay_seconds),
            )

    return _enqueue


@pytest.fixture
def consumer_factory(module, retry_policy, store, clock):
    """Factory for creating QueueConsumer instances."""

    def _factory(
        module=module,
        retry_policy=retry_policy,
        transaction_manager=store,
        polled_items_limit: int = 10,
        polling_period_seconds: int = 60,
        scheduler_tick_seconds: float = 1.0,
    ) -> QueueConsumer:
        return QueueConsumer(
            module=module,
            retry_policy=retry_policy,
            transaction_manager=transaction_manager,
            polled_items_limit=polled_items_limit,
            polling_period_seconds=polling_period_seconds,
            clock=clock,
            scheduler_tick_seconds=scheduler_tick_seconds,
        )

    return _factory
