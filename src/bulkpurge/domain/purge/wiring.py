"""Assembly of purge jobs from settings.

Every collaborator can be passed in explicitly; anything omitted is
built from the environment (``DATABASE_*``, ``REDIS_*``, ``PURGE_*``,
``MATTERMOST_*``, ``FILE_*``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bulkpurge.domain.purge.infrastructure.batch_deleter import BatchCursorDeleter
from bulkpurge.domain.purge.infrastructure.gate import ExclusivityGate
from bulkpurge.domain.purge.infrastructure.status_publishers import (
    CompositeStatusPublisher,
    LoggingStatusPublisher,
    RedisStatusPublisher,
)
from bulkpurge.domain.purge.orchestrator import PurgeOrchestrator
from bulkpurge.domain.purge.pipeline import PurgePipeline
from bulkpurge.domain.purge.settings import PurgeSettings, get_purge_settings
from bulkpurge.infra.mattermost.file_store import file_store_from_settings
from bulkpurge.infra.persistence.database import get_engine
from bulkpurge.infra.persistence.redis_client import get_redis_factory

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncEngine

    from bulkpurge.domain.purge.infrastructure.status_publishers import StatusPublisher
    from bulkpurge.infra.mattermost.client import MattermostClient
    from bulkpurge.infra.mattermost.settings import FileSettings


def exclusivity_gate(redis: Redis, settings: PurgeSettings | None = None) -> ExclusivityGate:
    settings = settings or get_purge_settings()
    return ExclusivityGate(redis, key=settings.gate_key, ttl_seconds=settings.gate_ttl_seconds)


def status_store(redis: Redis, settings: PurgeSettings | None = None) -> RedisStatusPublisher:
    """The shared status key, written by the job holding the gate."""
    settings = settings or get_purge_settings()
    return RedisStatusPublisher(redis, settings.status_key)


def job_status_store(
    redis: Redis, job_id: str, settings: PurgeSettings | None = None
) -> RedisStatusPublisher:
    """One job's own status key, kept for ``PURGE_JOB_STATUS_TTL_SECONDS``."""
    settings = settings or get_purge_settings()
    return RedisStatusPublisher(
        redis, settings.job_status_key(job_id), ttl_seconds=settings.job_status_ttl_seconds
    )


def job_status_publisher(
    redis: Redis, job_id: str | None, settings: PurgeSettings | None = None
) -> CompositeStatusPublisher:
    """Log every update of a job and keep the latest one under its own key."""
    publishers: list[StatusPublisher] = [LoggingStatusPublisher()]
    if job_id is not None:
        publishers.append(job_status_store(redis, job_id, settings))
    return CompositeStatusPublisher(publishers)


async def create_orchestrator(
    mattermost: MattermostClient,
    *,
    settings: PurgeSettings | None = None,
    engine: AsyncEngine | None = None,
    redis: Redis | None = None,
    file_settings: FileSettings | None = None,
    job_id: str | None = None,
) -> PurgeOrchestrator:
    """Build an orchestrator wired to the store, Redis and the server.

    Args:
        mattermost: Account and channel service client.
        settings: Purge settings.
        engine: Async engine of the store.
        redis: Redis client holding the gate and the status.
        file_settings: File storage settings, checked before anything is
            deleted.
        job_id: Id the job reports under. Without one, the job's own
            updates only reach the log.
    """
    settings = settings or get_purge_settings()
    engine = engine or get_engine()
    if redis is None:
        redis = await get_redis_factory().get_client()
    deleter = BatchCursorDeleter(engine, batch_size=settings.batch_size)

    def build_pipeline() -> PurgePipeline:
        files = file_store_from_settings(file_settings)
        return PurgePipeline.build(
            engine,
            deleter,
            accounts=mattermost,
            channels=mattermost,
            files=files,
        )

    return PurgeOrchestrator(
        gate=exclusivity_gate(redis, settings),
        publisher=status_store(redis, settings),
        build_pipeline=build_pipeline,
        progress_interval=settings.progress_interval,
        job_publisher=job_status_publisher(redis, job_id, settings),
    )
