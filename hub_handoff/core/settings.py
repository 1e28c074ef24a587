"""Timing settings for hub handoff operations.

Provides centralized polling and deadline configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import DEFAULT_OUTCOME_HISTORY, DEFAULT_POLL_INTERVAL


class HandoffTimingSettings(BaseSettings):
    """Detachment polling configuration."""

    poll_interval: float = Field(
        DEFAULT_POLL_INTERVAL,
        alias="HANDOFF_POLL_INTERVAL",
        gt=0,
        description="Seconds between detachment checks",
    )

    detach_timeout: float | None = Field(
        None,
        alias="HANDOFF_DETACH_TIMEOUT",
        gt=0,
        description="Upper bound in seconds for detachment; unset waits until cancelled",
    )

    outcome_history: int = Field(
        DEFAULT_OUTCOME_HISTORY,
        alias="HANDOFF_OUTCOME_HISTORY",
        ge=1,
        description="Number of detachment outcomes kept for inspection",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
timing_settings = HandoffTimingSettings()

POLL_INTERVAL: float = timing_settings.poll_interval
DETACH_TIMEOUT: float | None = timing_settings.detach_timeout
OUTCOME_HISTORY: int = timing_settings.outcome_history
