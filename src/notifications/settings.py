"""Delivery pipeline settings, read from ``NOTIFICATIONS_*`` environment variables."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeliverySettings(BaseSettings):
    queue_name: str = "notifications"
    max_delivery_attempts: int = Field(default=5, ge=1)
    consumer_concurrency: int = Field(default=4, ge=1)
    visibility_timeout_seconds: float = Field(default=30.0, gt=0)
    retry_delay_seconds: float = Field(default=10.0, ge=0)
    poll_interval_seconds: float = Field(default=1.0, ge=0)
    max_message_bytes: int = Field(default=256 * 1024, ge=1)
    max_batch_bytes: int = Field(default=256 * 1024, ge=1)
    max_batch_messages: int = Field(default=100, ge=1)
    bookkeeping_max_conflicts: int = Field(default=5, ge=0)
    settlement_history_limit: int = Field(default=1000, ge=0)
    book_url_template: str = ""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="after")
    def _message_fits_in_a_batch(self):
        if self.max_message_bytes > self.max_batch_bytes:
            raise ValueError("max_message_bytes cannot exceed max_batch_bytes")
        return self


@lru_cache(maxsize=1)
def get_settings() -> DeliverySettings:
    """Settings for this process; call ``get_settings.cache_clear()`` after changing the environment."""
    return DeliverySettings()
