"""TaskIQ broker configuration with Redis Stream.

Purge jobs run as TaskIQ tasks: the HTTP handler enqueues the job and
returns immediately, a worker process picks it up.

Usage:
    from bulkpurge.infra.taskiq import broker

    @broker.task
    async def my_task(arg: str) -> str:
        return f"processed {arg}"

    result = await my_task.kiq("value")

    # Start worker
    # taskiq worker bulkpurge.infra.taskiq.broker:broker bulkpurge.domain.purge.tasks
"""

from __future__ import annotations

from functools import lru_cache

from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from bulkpurge.infra.taskiq.settings import get_taskiq_settings


@lru_cache(maxsize=1)
def get_result_backend() -> RedisAsyncResultBackend[dict[str, object]]:
    """Get or create the TaskIQ result backend.

    Returns:
        RedisAsyncResultBackend configured from TaskIQSettings.
    """
    settings = get_taskiq_settings()
    return RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.result_ttl,
    )


@lru_cache(maxsize=1)
def get_broker() -> RedisStreamBroker:
    """Get or create the TaskIQ broker.

    Returns:
        RedisStreamBroker configured from TaskIQSettings with result backend.
    """
    settings = get_taskiq_settings()
    return RedisStreamBroker(
        url=settings.redis_url,
        queue_name=settings.queue_name,
    ).with_result_backend(get_result_backend())


class _LazyBroker:
    """Lazy proxy that defers broker creation until first attribute access.

    The taskiq CLI expects ``module:broker``; tasks decorate against this
    proxy at import time without touching Redis.
    """

    _instance: RedisStreamBroker | None = None

    def _get(self) -> RedisStreamBroker:
        if self._instance is None:
            self._instance = get_broker()
        return self._instance

    def __getattr__(self, name: str) -> object:
        return getattr(self._get(), name)


broker: RedisStreamBroker = _LazyBroker()  # type: ignore[assignment]
