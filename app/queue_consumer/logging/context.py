"""Per-item context binding for structured logging.

Usage:
    from queue_consumer.logging import bind_item_context

    with bind_item_context(item_id=42, item_index=1, batch_size=10):
        # All logs within this block include the item context
        logger.info("queued_item_processing")

Dependencies:
    - structlog.contextvars
"""

from contextlib import contextmanager
from typing import Any, Generator

import structlog


@contextmanager
def bind_item_context(**context: Any) -> Generator[None, None, None]:
    """Bind context to all logs emitted within the block.

    Args:
        **context: Key-value pairs to include in logs (e.g. item_id).

    Yields:
        None - context is bound to structlog's context vars.
    """
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
