"""Generic polling queue consumer.

Periodically discovers due work items, processes each one in its own
transaction and, on failure, asks a pluggable retry policy whether and when
the item should be attempted again.

Architecture:
- QueueingState: Per-item attempt bookkeeping, owned by storage
- RetryPolicy: Protocol deciding the next attempt time
- LimitedRetryPolicy: Decorator capping the number of attempts
- QueueConsumerModule: Protocol for finding, loading and processing items
- TransactionManager: Protocol providing a transaction scope
- QueueConsumer: Fixed-delay polling orchestrator

Usage:
    from queue_consumer import (
        InMemoryQueueStore,
        InMemoryQueueConsumerModule,
        LimitedRetryPolicy,
        QueueConsumer,
    )

    store = InMemoryQueueStore()
    module = InMemoryQueueConsumerModule(store, MyProcessor())
    consumer = QueueConsumer(
        module=module,
        retry_policy=LimitedRetryPolicy(5, MyBackoffPolicy()),
        transaction_manager=store,
        polled_items_limit=10,
        polling_period_seconds=60,
    )

    # Run one cycle on demand...
    stats = consumer.process_queued_items()

    # ...or poll in the background
    consumer.start()
"""

from queue_consumer.consumer import QueueConsumer
from queue_consumer.exceptions import (
    BookkeepingFailure,
    FetchFailure,
    InvalidConfiguration,
    ProcessingFailure,
    QueueConsumerError,
)
from queue_consumer.factory import create_queue_consumer
from queue_consumer.memory import (
    InMemoryQueueConsumerModule,
    InMemoryQueueStore,
    ItemProcessor,
)
from queue_consumer.models import ItemOutcome, QueueingState, QueueingStatus
from queue_consumer.module import QueueConsumerModule
from queue_consumer.retry import LimitedRetryPolicy, RetryPolicy
from queue_consumer.transaction import TransactionManager

__all__ = [
    # Models
    "QueueingState",
    "QueueingStatus",
    "ItemOutcome",
    # Retry
    "RetryPolicy",
    "LimitedRetryPolicy",
    # Collaborators
    "QueueConsumerModule",
    "TransactionManager",
    "InMemoryQueueStore",
    "InMemoryQueueConsumerModule",
    "ItemProcessor",
    # Consumer
    "QueueConsumer",
    "create_queue_consumer",
    # Errors
    "QueueConsumerError",
    "InvalidConfiguration",
    "FetchFailure",
    "ProcessingFailure",
    "BookkeepingFailure",
]
