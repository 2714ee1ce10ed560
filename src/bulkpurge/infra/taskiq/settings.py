"""TaskIQ configuration using Pydantic settings.

Settings are loaded from environment variables with ``TASKIQ_`` prefix.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaskIQSettings(BaseSettings):
    """Configuration for the TaskIQ broker that runs purge jobs.

    Environment Variables:
        TASKIQ_REDIS_URL: Redis URL for the broker
            (default: redis://localhost:6379/1, database 1 to separate
            broker streams from the gate and status keys on database 0)
        TASKIQ_RESULT_TTL: Result backend TTL in seconds (default: 86400)
        TASKIQ_QUEUE_NAME: Redis stream name (default: bulkpurge)

    Example:
        >>> TaskIQSettings().redis_url
        'redis://localhost:6379/1'
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKIQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_url: str = Field(
        default="redis://localhost:6379/1",
        description="Redis URL for TaskIQ broker (database 1 by default)",
    )
    result_ttl: int = Field(
        default=86400,
        ge=60,
        le=604800,
        description="Result backend TTL in seconds",
    )
    queue_name: str = Field(
        default="bulkpurge",
        description="Redis stream the purge jobs are published to",
    )


@lru_cache(maxsize=1)
def get_taskiq_settings() -> TaskIQSettings:
    """Get cached TaskIQ settings singleton."""
    return TaskIQSettings()
