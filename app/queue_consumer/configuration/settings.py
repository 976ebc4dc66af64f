"""Queue consumer configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from queue_consumer.configuration.consumer import QueueConsumerSettings


class Settings(BaseSettings):
    """Application settings aggregator.

    Environment Variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        ENVIRONMENT: Deployment environment; "production" switches logs to JSON

    Example:
        ```python
        from queue_consumer.configuration import get_settings

        settings = get_settings()
        period = settings.consumer.polling_period_seconds

        if settings.is_production:
            # Production-specific logic...
        ```
    """

    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    consumer: QueueConsumerSettings

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def __init__(self, **kwargs):
        """Initialize Settings, instantiating missing sections from the environment."""
        if "consumer" not in kwargs:
            kwargs["consumer"] = QueueConsumerSettings()
        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
