"""Queue consumer error taxonomy.

Only InvalidConfiguration ever leaves the consumer; the remaining errors are
raised and caught internally at the cycle or per-item boundary so they can be
logged with full context.
"""

from typing import Any


class QueueConsumerError(Exception):
    """Base class for queue consumer errors."""


class InvalidConfiguration(QueueConsumerError, ValueError):
    """Out-of-range parameter or missing collaborator at construction time."""


class FetchFailure(QueueConsumerError):
    """Due item discovery failed; the current cycle is aborted."""


class ProcessingFailure(QueueConsumerError):
    """Processing of one item failed, including its transaction commit.

    Attributes:
        item_id: Identifier of the item being processed
        error: The original exception raised while processing
    """

    def __init__(self, item_id: Any, error: BaseException) -> None:
        super().__init__(f"Error while processing item by ID {item_id}: {error}")
        self.item_id = item_id
        self.error = error


class BookkeepingFailure(QueueConsumerError):
    """Recording a processing failure for one item failed."""

    def __init__(self, item_id: Any, error: BaseException) -> None:
        super().__init__(
            f"Error while registering failed attempt for item by ID {item_id}: {error}"
        )
        self.item_id = item_id
        self.error = error
