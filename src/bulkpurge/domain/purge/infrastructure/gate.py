"""Cluster-wide exclusivity gate for purge jobs.

A single shared Redis key marks "a purge job is running". Acquisition is
an atomic set-if-absent, so of any number of concurrent submissions
exactly one wins. There is no queueing: losers fail closed.

Lifecycle:
1. try_acquire() -- ``SET key token NX``; False if the key already exists
2. release()     -- ``DEL key``, unconditional; with a TTL, a compare-and-delete
                    that clears the key only while it holds this gate's token
3. hold()        -- scoped acquire/release; exactly one release per
                    successful acquire, whatever happens inside the scope

A job killed while holding the gate leaves the key set. Configure
``PURGE_GATE_TTL_SECONDS`` to let it expire, or clear it through the
administrator lock endpoint (:meth:`ExclusivityGate.clear`). With a TTL,
once an expired flag has been taken by a newer job, the older job's
release leaves it alone.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from bulkpurge.domain.purge.settings import DEFAULT_GATE_KEY
from bulkpurge.foundation.domain.exceptions import ExclusivityConflictError, GateError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# KEYS[1] = gate key, ARGV[1] = token of the releasing holder
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class ExclusivityGate:
    """Shared flag guaranteeing at most one running purge job.

    Args:
        redis: Async Redis client (``decode_responses=True``).
        key: Key of the shared flag.
        ttl_seconds: Optional expiry of the flag; None keeps it until released.
    """

    def __init__(
        self,
        redis: Redis,
        key: str = DEFAULT_GATE_KEY,
        ttl_seconds: int | None = None,
    ) -> None:
        self._redis = redis
        self._key = key
        self._ttl_seconds = ttl_seconds
        self._token: str | None = None

    @property
    def key(self) -> str:
        return self._key

    async def try_acquire(self) -> bool:
        """Atomically set the flag if it is not already set.

        Returns:
            True if this caller now holds the gate, False if it was held.

        Raises:
            GateError: If the flag could not be read or written.
        """
        token = uuid.uuid4().hex
        try:
            acquired = await self._redis.set(self._key, token, nx=True, ex=self._ttl_seconds)
        except RedisError as exc:
            raise GateError("acquire", self._key, str(exc)) from exc
        if acquired:
            self._token = token
            logger.info("gate_acquired", extra={"gate_key": self._key})
            return True
        logger.info("gate_held_elsewhere", extra={"gate_key": self._key})
        return False

    async def release(self) -> None:
        """Clear the flag.

        Without a TTL the flag is cleared unconditionally, like :meth:`clear`.
        With one, a flag that has since expired and been set by another job
        is left in place.

        Raises:
            GateError: If the flag could not be cleared.
        """
        token, self._token = self._token, None
        if token is None or self._ttl_seconds is None:
            await self.clear()
            return
        try:
            released = await self._redis.eval(RELEASE_SCRIPT, 1, self._key, token)
        except RedisError as exc:
            raise GateError("release", self._key, str(exc)) from exc
        if not released:
            logger.warning("gate_taken_over", extra={"gate_key": self._key})
            return
        logger.info("gate_released", extra={"gate_key": self._key})

    async def clear(self) -> None:
        """Clear the flag, whoever set it.

        Raises:
            GateError: If the flag could not be cleared.
        """
        try:
            await self._redis.delete(self._key)
        except RedisError as exc:
            raise GateError("release", self._key, str(exc)) from exc
        logger.info("gate_released", extra={"gate_key": self._key})

    async def is_held(self) -> bool:
        """Check whether a job currently holds the gate.

        Raises:
            GateError: If the flag could not be read.
        """
        try:
            return bool(await self._redis.exists(self._key))
        except RedisError as exc:
            raise GateError("acquire", self._key, str(exc)) from exc

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        """Hold the gate for the duration of the ``async with`` block.

        Raises:
            ExclusivityConflictError: If another job holds the gate. The
                block does not run and nothing is released.
            GateError: If the flag could not be read or written.
        """
        if not await self.try_acquire():
            raise ExclusivityConflictError(self._key)
        try:
            yield
        finally:
            await self.release()
