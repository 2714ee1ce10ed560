"""Progress accounting for purge jobs.

The pipeline produces a stream of :class:`ProgressEvent` values; the
:class:`ProgressReporter` consumes it and decides which of them become
outward status updates.

Rules:
- at most one progress update per ``interval`` seconds (default 1 s)
- the started update and the terminal update (success or failure) are
  always published, whatever the throttle window says
- reported counts never decrease and never exceed the total
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bulkpurge.domain.purge.infrastructure.status_publishers import (
    NOTHING_TO_DO,
    StatusUpdate,
    dry_run_message,
    failed_message,
    finished_message,
    progress_message,
    started_message,
)
from bulkpurge.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from bulkpurge.domain.purge.infrastructure.status_publishers import StatusPublisher

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Position of a running job.

    Attributes:
        completed: Users fully processed. Only the user deletion stage
            advances it; later stages repeat the last value.
        total: Size of the target set.
        stage: Name of the stage that produced the event.
    """

    completed: int
    total: int
    stage: str


class ProgressReporter:
    """Throttles progress events into status updates.

    Args:
        publisher: Where updates go.
        total: Size of the target set.
        interval: Minimum seconds between two progress updates.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        publisher: StatusPublisher,
        total: int,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._publisher = publisher
        self._total = total
        self._interval = interval
        self._clock = clock
        self._completed = 0
        self._published_completed = 0
        self._last_published_at: float | None = None

    @property
    def completed(self) -> int:
        """Highest completed count seen so far."""
        return self._completed

    @property
    def total(self) -> int:
        return self._total

    async def started(self) -> None:
        await self._publish(StatusUpdate(started_message(self._total), 0, self._total))

    async def advance(self, event: ProgressEvent) -> bool:
        """Record an event and publish it unless throttled.

        Returns:
            True if a status update was published.
        """
        self._completed = max(self._completed, min(event.completed, self._total))
        if self._completed == self._published_completed:
            return False

        now = self._clock()
        if self._last_published_at is not None and now - self._last_published_at < self._interval:
            return False

        message = progress_message(self._completed, self._total)
        await self._publish(StatusUpdate(message, self._completed, self._total))
        return True

    async def finished(self) -> None:
        self._completed = self._total
        await self._publish(
            StatusUpdate(
                finished_message(self._total),
                self._total,
                self._total,
                terminal=True,
                succeeded=True,
            )
        )

    async def failed(self, reason: str) -> None:
        """Publish the terminal failure with the last known counts."""
        await self._publish(
            StatusUpdate(
                failed_message(reason, self._completed, self._total),
                self._completed,
                self._total,
                terminal=True,
                succeeded=False,
            )
        )

    async def dry_run(self, emails: Iterable[str]) -> None:
        await self._publish(
            StatusUpdate(dry_run_message(emails), 0, self._total, terminal=True, succeeded=True)
        )

    async def nothing_to_do(self) -> None:
        await self._publish(StatusUpdate(NOTHING_TO_DO, 0, 0, terminal=True, succeeded=True))

    async def _publish(self, update: StatusUpdate) -> None:
        self._last_published_at = self._clock()
        self._published_completed = update.completed
        try:
            await self._publisher.publish(update)
        except Exception:
            logger.exception("progress_publish_failed", terminal=update.terminal)
