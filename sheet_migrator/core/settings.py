"""Remote call retry settings.

Provides centralized retry/backoff configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrySettings(BaseSettings):
    """Bounded exponential backoff applied to every remote store call."""

    max_attempts: int = Field(
        6, ge=1, alias="REMOTE_MAX_ATTEMPTS", description="Total tries per remote call"
    )

    initial_delay: float = Field(
        0.5, ge=0, alias="REMOTE_INITIAL_DELAY", description="First backoff delay in seconds"
    )

    max_delay: float = Field(
        30.0, gt=0, alias="REMOTE_MAX_DELAY", description="Backoff ceiling in seconds"
    )

    jitter: float = Field(
        0.3, ge=0, alias="REMOTE_JITTER", description="Maximum random jitter added per wait"
    )

    exponential_base: float = Field(
        2.0, gt=1, alias="REMOTE_EXPONENTIAL_BASE", description="Backoff multiplier"
    )

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True, frozen=True
    )

    @classmethod
    def no_retry(cls) -> "RetrySettings":
        """Single attempt, no waiting."""
        return cls(max_attempts=1, initial_delay=0, jitter=0)
