"""Configuration management for the queue consumer.

Exports:
    get_settings: Cached Settings singleton
    Settings: Main settings class (for testing/overrides)
    QueueConsumerSettings: Consumer settings class

Example:
    ```python
    from queue_consumer.configuration import get_settings

    settings = get_settings()
    limit = settings.consumer.polled_items_limit
    ```
"""

from functools import lru_cache

from queue_consumer.configuration.consumer import QueueConsumerSettings
from queue_consumer.configuration.settings import Settings


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings singleton.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


__all__ = ["get_settings", "Settings", "QueueConsumerSettings"]
