"""Purge job orchestration.

State machine of one job::

    IDLE --submit--> ACQUIRING --acquired--> RUNNING --last stage ok--> COMPLETED
                         |                      |
                         +--gate held---------> FAILED <--stage error--+

- A held gate fails closed: the job never runs and mutates nothing.
- Any stage error goes straight to FAILED with the users deleted so far.
- The gate is released on entry to COMPLETED or FAILED, before the
  terminal status update is published.
- Dry runs and empty target sets short-circuit before ACQUIRING: they
  report and finish without touching the gate or the store.
- Every update goes to the job's own status surface. Only the job holding
  the gate also writes the shared one, so dry runs and rejected jobs never
  overwrite the running job's status.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from bulkpurge.domain.purge.infrastructure.status_publishers import (
    CompositeStatusPublisher,
    LoggingStatusPublisher,
)
from bulkpurge.domain.purge.progress import ProgressReporter
from bulkpurge.foundation.domain.exceptions import (
    ConfigurationError,
    ExclusivityConflictError,
    GateError,
    StageAbortError,
)
from bulkpurge.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from bulkpurge.domain.purge.infrastructure.gate import ExclusivityGate
    from bulkpurge.domain.purge.infrastructure.status_publishers import StatusPublisher
    from bulkpurge.domain.purge.pipeline import PurgePipeline
    from bulkpurge.foundation.domain.user_value_objects import TargetUser

logger = get_logger(__name__)


class JobState(StrEnum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PurgeOutcome:
    """Terminal result of one job.

    Attributes:
        state: COMPLETED or FAILED.
        completed: Users deleted.
        total: Size of the target set.
        error: Failure reason, None on success.
        stage: Stage that failed, when a stage failed.
    """

    state: JobState
    completed: int
    total: int
    error: str | None = None
    stage: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.COMPLETED


class PurgeOrchestrator:
    """Runs one purge job from submission to terminal report.

    Args:
        gate: Cluster-wide exclusivity gate.
        publisher: Shared status surface, written only while this job holds
            the gate.
        build_pipeline: Builds the stage pipeline. Called only for live
            runs and before the gate is acquired, so configuration errors
            (an unsupported file driver) fail the job before anything is
            deleted.
        progress_interval: Minimum seconds between progress updates.
        clock: Monotonic clock for progress throttling.
        job_publisher: This job's own status surface, receiving every
            update. Defaults to the log.
    """

    def __init__(
        self,
        gate: ExclusivityGate,
        publisher: StatusPublisher,
        build_pipeline: Callable[[], PurgePipeline],
        progress_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        job_publisher: StatusPublisher | None = None,
    ) -> None:
        self._gate = gate
        self._publisher = publisher
        self._job_publisher = job_publisher or LoggingStatusPublisher()
        self._build_pipeline = build_pipeline
        self._progress_interval = progress_interval
        self._clock = clock
        self._state = JobState.IDLE

    @property
    def state(self) -> JobState:
        return self._state

    async def run(self, users: Sequence[TargetUser], *, dry_run: bool = False) -> PurgeOutcome:
        """Run a job for ``users``.

        Never raises for job failures: they are reported on the status
        surface and returned as a FAILED outcome.
        """
        total = len(users)
        own = self._reporter(self._job_publisher, total)
        logger.info("purge_job_submitted", total=total, dry_run=dry_run)

        if not users:
            await own.nothing_to_do()
            return self._enter(PurgeOutcome(JobState.COMPLETED, 0, 0))

        if dry_run:
            await own.dry_run(user.email for user in users)
            return self._enter(PurgeOutcome(JobState.COMPLETED, 0, total))

        try:
            pipeline = self._build_pipeline()
        except ConfigurationError as exc:
            rejected = self._enter(PurgeOutcome(JobState.FAILED, 0, total, exc.message))
            await own.failed(exc.message)
            return rejected

        holder = self._reporter(
            CompositeStatusPublisher([self._job_publisher, self._publisher]), total
        )
        outcome: PurgeOutcome | None = None
        self._transition(JobState.ACQUIRING)
        try:
            async with self._gate.hold():
                self._transition(JobState.RUNNING)
                await holder.started()
                outcome = await self._execute(pipeline, users, holder)
        except ExclusivityConflictError as exc:
            logger.warning("purge_job_rejected", reason=str(exc), gate_key=exc.gate_key)
            rejected = self._enter(PurgeOutcome(JobState.FAILED, 0, total, str(exc)))
            await own.failed(str(exc))
            return rejected
        except GateError as exc:
            if outcome is None or outcome.succeeded:
                outcome = PurgeOutcome(JobState.FAILED, holder.completed, total, exc.message)
            else:
                logger.error("gate_release_failed", error=exc.message)

        # A job that never got the gate leaves the shared surface alone.
        reporter = holder if self._state is JobState.RUNNING else own
        self._enter(outcome)
        if outcome.succeeded:
            await reporter.finished()
        else:
            await reporter.failed(outcome.error or "unknown error")
        return outcome

    async def _execute(
        self,
        pipeline: PurgePipeline,
        users: Sequence[TargetUser],
        reporter: ProgressReporter,
    ) -> PurgeOutcome:
        total = len(users)
        try:
            async for event in pipeline.run(users):
                await reporter.advance(event)
        except StageAbortError as exc:
            return PurgeOutcome(JobState.FAILED, exc.completed, total, exc.reason, exc.stage)
        return PurgeOutcome(JobState.COMPLETED, total, total)

    def _reporter(self, publisher: StatusPublisher, total: int) -> ProgressReporter:
        return ProgressReporter(
            publisher, total, interval=self._progress_interval, clock=self._clock
        )

    def _transition(self, state: JobState) -> None:
        logger.debug("purge_job_state", previous=self._state.value, state=state.value)
        self._state = state

    def _enter(self, outcome: PurgeOutcome) -> PurgeOutcome:
        self._transition(outcome.state)
        logger.info(
            "purge_job_finished",
            state=outcome.state.value,
            completed=outcome.completed,
            total=outcome.total,
            error=outcome.error,
            stage=outcome.stage,
        )
        return outcome
