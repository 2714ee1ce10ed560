"""Purge job configuration using Pydantic settings.

Settings are loaded from environment variables with ``PURGE_`` prefix.
Target lists are plain comma-separated strings so they can be pasted
from the server's plugin configuration unchanged.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_BATCH_SIZE = 1000
DEFAULT_GATE_KEY = "bulkpurge/runlock"
DEFAULT_STATUS_KEY = "bulkpurge/status"


class PurgeSettings(BaseSettings):
    """Configuration for bulk user purge jobs.

    Environment Variables:
        PURGE_TARGET_EMAIL_SUFFIXES: Comma-separated email suffixes to target
        PURGE_TARGET_EMAIL_ADDRESSES: Comma-separated exact addresses to target
        PURGE_BATCH_SIZE: Rows per batch transaction (default: 1000)
        PURGE_PROGRESS_INTERVAL: Minimum seconds between status updates (default: 1.0)
        PURGE_GATE_KEY: Redis key of the exclusivity flag
        PURGE_GATE_TTL_SECONDS: Optional expiry of the flag (default: never)
        PURGE_STATUS_KEY: Redis key holding the latest update of the running job
        PURGE_JOB_STATUS_TTL_SECONDS: Lifetime of each job's own status key (default: 1 day)

    Example:
        >>> PurgeSettings(target_email_suffixes="@old.test, @gone.test").target_email_suffixes
        ['@old.test', '@gone.test']
    """

    model_config = SettingsConfigDict(
        env_prefix="PURGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    target_email_suffixes: Annotated[list[str], NoDecode] = Field(default_factory=list)
    target_email_addresses: Annotated[list[str], NoDecode] = Field(default_factory=list)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, le=100_000)
    progress_interval: float = Field(default=1.0, ge=0)
    gate_key: str = Field(default=DEFAULT_GATE_KEY)
    gate_ttl_seconds: int | None = Field(default=None, ge=1)
    status_key: str = Field(default=DEFAULT_STATUS_KEY)
    job_status_ttl_seconds: int = Field(default=86_400, ge=1)

    @field_validator("target_email_suffixes", "target_email_addresses", mode="before")
    @classmethod
    def _parse_comma_separated(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return [str(s).strip() for s in v if str(s).strip()]

    def job_status_key(self, job_id: str) -> str:
        """Redis key holding the latest update of one job."""
        return f"{self.status_key}/jobs/{job_id}"


@lru_cache(maxsize=1)
def get_purge_settings() -> PurgeSettings:
    """Get cached purge settings singleton."""
    return PurgeSettings()
