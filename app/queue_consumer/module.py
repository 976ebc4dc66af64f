"""Consumer module protocol.

The consumer module is the application-supplied collaborator that knows where
queued items live and how to process them. The queue consumer is generic over
the item identifier type and never inspects identifiers.
"""

from datetime import datetime
from typing import Optional, Protocol, Sequence, TypeVar

from queue_consumer.models import QueueingState

ID = TypeVar("ID")


class QueueConsumerModule(Protocol[ID]):
    """Protocol for module-specific queue access and processing logic.

    Example:
        class InvoiceQueueModule:
            def find_due_item_ids(self, now, limit):
                return repository.find_invoice_ids_due_before(now, limit)

            def get_queueing_state(self, item_id):
                invoice = repository.get(item_id)
                return invoice.queueing_state if invoice else None

            def process_item(self, item_id, current_count, total_count):
                invoice = repository.get(item_id)
                if invoice is None:
                    return None
                send_invoice(invoice)
                return invoice.queueing_state
    """

    def find_due_item_ids(self, now: datetime, limit: int) -> Sequence[ID]:
        """Return up to `limit` IDs of items whose next attempt time is <= now.

        The order is implementation defined but must be deterministic.
        """
        ...

    def get_queueing_state(self, item_id: ID) -> Optional[QueueingState]:
        """Return the item's queueing state, or None if the item no longer exists."""
        ...

    def process_item(
        self, item_id: ID, current_count: int, total_count: int
    ) -> Optional[QueueingState]:
        """Process one item.

        Args:
            item_id: Item to process
            current_count: 1-based position of the item within the batch
            total_count: Number of items in the batch

        Returns:
            The item's queueing state for success bookkeeping, or None if the
            item vanished before processing

        Raises:
            Exception: Any error marks the attempt as failed
        """
        ...
