"""Factory for creating queue consumers based on configuration."""

from datetime import datetime
from typing import Callable, Optional

from queue_consumer.configuration import QueueConsumerSettings, get_settings
from queue_consumer.consumer import QueueConsumer
from queue_consumer.logging import get_module_logger
from queue_consumer.module import ID, QueueConsumerModule
from queue_consumer.retry import LimitedRetryPolicy, RetryPolicy
from queue_consumer.transaction import TransactionManager

logger = get_module_logger()


def create_queue_consumer(
    module: QueueConsumerModule[ID],
    retry_policy: RetryPolicy,
    transaction_manager: TransactionManager,
    settings: Optional[QueueConsumerSettings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> QueueConsumer[ID]:
    """Create an unstarted QueueConsumer from settings.

    Args:
        module: Consumer module for the queue
        retry_policy: Policy calculating retry delays. Wrapped in a
            LimitedRetryPolicy when settings.attempt_count_limit is set.
        transaction_manager: Transaction scope provider
        settings: Optional consumer settings. If None, uses
            get_settings().consumer
        clock: Optional clock override

    Returns:
        Configured QueueConsumer

    Raises:
        InvalidConfiguration: If a setting is out of range

    Examples:
        >>> consumer = create_queue_consumer(module, backoff, store)
        >>> consumer.start()
    """
    settings = settings or get_settings().consumer

    if settings.attempt_count_limit is not None:
        retry_policy = LimitedRetryPolicy(settings.attempt_count_limit, retry_policy)

    logger.info(
        "creating_queue_consumer",
        polled_items_limit=settings.polled_items_limit,
        polling_period_seconds=settings.polling_period_seconds,
        attempt_count_limit=settings.attempt_count_limit,
    )

    return QueueConsumer(
        module=module,
        retry_policy=retry_policy,
        transaction_manager=transaction_manager,
        polled_items_limit=settings.polled_items_limit,
        polling_period_seconds=settings.polling_period_seconds,
        clock=clock,
        scheduler_tick_seconds=settings.scheduler_tick_seconds,
    )
