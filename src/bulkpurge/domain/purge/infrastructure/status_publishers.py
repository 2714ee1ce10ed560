"""Status surface for purge jobs.

A job reports its progress as a sequence of :class:`StatusUpdate`
objects. Publishers deliver them somewhere an operator can see them:
the log, or Redis keys read by the status endpoints. Every job keeps its
own key; the shared status key belongs to the job holding the gate.

Message texts are markdown, as rendered in the server's status post.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Protocol

from bulkpurge.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from redis.asyncio import Redis

logger = get_logger(__name__)

QUEUED_HEADER = "### Bulk user deletion job queued"
STARTED_HEADER = "### Bulk user deletion job started"
FINISHED_HEADER = "### Bulk user deletion job finished"
FAILED_HEADER = "### Bulk user deletion job failed!"
DRY_RUN_HEADER = "### (DRY RUN) Bulk user deletion job finished"
NOTHING_TO_DO = "There's nothing to do - there are no matching users to delete."


def queued_message(total: int) -> str:
    return f"{QUEUED_HEADER}\nWaiting for a worker to process {total} users..."


def started_message(total: int) -> str:
    return f"{STARTED_HEADER}\nDeleting {total} users..."


def progress_message(completed: int, total: int) -> str:
    return f"{STARTED_HEADER}\nDeleted {completed}/{total} users..."


def finished_message(total: int) -> str:
    return (
        f"{FINISHED_HEADER}\nDeleted {total} users and cleaned up empty channels, "
        "boards, and playbooks"
    )


def failed_message(reason: str, completed: int, total: int) -> str:
    return f"{FAILED_HEADER}\n{reason}. Deleted {completed}/{total} users"


def dry_run_message(emails: Iterable[str]) -> str:
    emails = list(emails)
    return f"{DRY_RUN_HEADER}\nWould delete {len(emails)} users: {', '.join(emails)}"


@dataclass(frozen=True, slots=True)
class StatusUpdate:
    """One outward status update.

    Attributes:
        message: Markdown text shown to the operator.
        completed: Users fully processed so far.
        total: Size of the target set.
        terminal: True for the last update of a job.
        succeeded: For terminal updates, whether the job succeeded.
    """

    message: str
    completed: int
    total: int
    terminal: bool = False
    succeeded: bool | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusUpdate:
        return cls(**data)


class StatusPublisher(Protocol):
    """Delivers status updates to an operator-visible surface."""

    async def publish(self, update: StatusUpdate) -> None: ...


class LoggingStatusPublisher:
    """Writes every update to the structured log."""

    async def publish(self, update: StatusUpdate) -> None:
        logger.info(
            "purge_status",
            message=update.message,
            completed=update.completed,
            total=update.total,
            terminal=update.terminal,
            succeeded=update.succeeded,
        )


class RedisStatusPublisher:
    """Keeps the latest update as JSON under one Redis key.

    Args:
        redis: Async Redis client (``decode_responses=True``).
        key: Key holding the latest update.
        ttl_seconds: Optional expiry, renewed by every update.
    """

    def __init__(self, redis: Redis, key: str, ttl_seconds: int | None = None) -> None:
        self._redis = redis
        self._key = key
        self._ttl_seconds = ttl_seconds

    async def publish(self, update: StatusUpdate) -> None:
        await self._redis.set(self._key, json.dumps(update.as_dict()), ex=self._ttl_seconds)

    async def latest(self) -> StatusUpdate | None:
        """Return the last published update, or None if no job reported yet."""
        raw = await self._redis.get(self._key)
        if raw is None:
            return None
        return StatusUpdate.from_dict(json.loads(raw))


class CompositeStatusPublisher:
    """Fans an update out to several publishers.

    A failing publisher is logged and skipped; it never stops the job or
    the other publishers.
    """

    def __init__(self, publishers: Sequence[StatusPublisher]) -> None:
        self._publishers = list(publishers)

    async def publish(self, update: StatusUpdate) -> None:
        for publisher in self._publishers:
            try:
                await publisher.publish(update)
            except Exception:
                logger.exception(
                    "status_publish_failed",
                    publisher=type(publisher).__name__,
                    terminal=update.terminal,
                )
