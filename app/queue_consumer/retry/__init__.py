"""Retry policies for failed queue items."""

from queue_consumer.retry.policy import LimitedRetryPolicy, RetryPolicy

__all__ = [
    "RetryPolicy",
    "LimitedRetryPolicy",
]
