"""Queue consumer settings."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from queue_consumer.configuration.base import ComponentSettings


class QueueConsumerSettings(ComponentSettings):
    """Polling and retry limits for the queue consumer.

    Values are only parsed here. Range checks happen when the consumer and
    the limiting retry policy are constructed, which raise
    InvalidConfiguration.

    Environment Variables:
        QUEUE_CONSUMER_POLLED_ITEMS_LIMIT: Items fetched per cycle (default: 10)
        QUEUE_CONSUMER_POLLING_PERIOD_SECONDS: Delay between the end of one
            cycle and the start of the next (default: 60s)
        QUEUE_CONSUMER_ATTEMPT_COUNT_LIMIT: Maximum attempts per item; empty
            disables the limit (default: 5)
        QUEUE_CONSUMER_SCHEDULER_TICK_SECONDS: How often the worker thread
            checks for a pending cycle (default: 1.0s)

    Example:
        ```python
        from queue_consumer.configuration import get_settings

        settings = get_settings()
        limit = settings.consumer.polled_items_limit
        ```
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    polled_items_limit: int = Field(
        default=10,
        alias="QUEUE_CONSUMER_POLLED_ITEMS_LIMIT",
        description="Number of due items fetched per polling cycle",
    )
    polling_period_seconds: int = Field(
        default=60,
        alias="QUEUE_CONSUMER_POLLING_PERIOD_SECONDS",
        description="Delay between polling cycles (seconds)",
    )
    attempt_count_limit: Optional[int] = Field(
        default=5,
        alias="QUEUE_CONSUMER_ATTEMPT_COUNT_LIMIT",
        description="Maximum attempts per item before giving up; None disables",
    )
    scheduler_tick_seconds: float = Field(
        default=1.0,
        alias="QUEUE_CONSUMER_SCHEDULER_TICK_SECONDS",
        description="Worker thread wake-up interval (seconds)",
    )

    @field_validator("attempt_count_limit", mode="before")
    @classmethod
    def _empty_means_unlimited(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value
