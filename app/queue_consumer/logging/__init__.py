"""Structured logging infrastructure built on structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_item_context(): Context manager for per-item logging context
    - truncate_large_values(): Processor limiting string lengths
"""

from queue_consumer.logging.context import bind_item_context
from queue_consumer.logging.formatters import truncate_large_values
from queue_consumer.logging.setup import configure_logging, get_module_logger

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_item_context",
    "truncate_large_values",
]
