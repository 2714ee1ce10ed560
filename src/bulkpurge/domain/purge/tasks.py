"""Background purge job.

The HTTP handler enqueues :func:`run_purge_job` and returns at once; a
TaskIQ worker runs the job to completion::

    taskiq worker bulkpurge.infra.taskiq.broker:broker bulkpurge.domain.purge.tasks
"""

from __future__ import annotations

import uuid
from typing import Any

from taskiq import TaskiqEvents, TaskiqState

from bulkpurge.domain.purge.wiring import create_orchestrator
from bulkpurge.foundation.domain.user_value_objects import TargetUser
from bulkpurge.infra.mattermost.client import MattermostClient
from bulkpurge.infra.observability.logging import (
    bind_job_context,
    clear_job_context,
    configure_logging,
    get_logger,
)
from bulkpurge.infra.persistence.database import dispose_engine
from bulkpurge.infra.persistence.redis_client import get_redis_factory
from bulkpurge.infra.taskiq.broker import broker

logger = get_logger(__name__)

PURGE_TASK_NAME = "bulkpurge.run_purge_job"


@broker.on_event(TaskiqEvents.WORKER_STARTUP)
async def _worker_startup(state: TaskiqState) -> None:
    configure_logging()
    logger.info("purge_worker_started")


@broker.on_event(TaskiqEvents.WORKER_SHUTDOWN)
async def _worker_shutdown(state: TaskiqState) -> None:
    await dispose_engine()
    await get_redis_factory().close()
    logger.info("purge_worker_stopped")


@broker.task(task_name=PURGE_TASK_NAME)
async def run_purge_job(
    users: list[dict[str, Any]],
    dry_run: bool,
    requested_by: str,
    job_id: str | None = None,
) -> dict[str, Any]:
    """Run one purge job.

    Args:
        users: Target users, as produced by ``TargetUser.as_dict``.
        dry_run: Only report the target set.
        requested_by: Id of the administrator who issued the command.
        job_id: Id the job reports its status under; generated when omitted.

    Returns:
        The terminal outcome (state, counts, error).
    """
    job_id = job_id or uuid.uuid4().hex
    bind_job_context(job_id=job_id, requested_by=requested_by)
    mattermost = MattermostClient()
    try:
        orchestrator = await create_orchestrator(mattermost, job_id=job_id)
        outcome = await orchestrator.run(
            [TargetUser.from_api(user) for user in users], dry_run=dry_run
        )
    finally:
        await mattermost.aclose()
        clear_job_context()

    return {
        "job_id": job_id,
        "state": outcome.state.value,
        "completed": outcome.completed,
        "total": outcome.total,
        "error": outcome.error,
        "stage": outcome.stage,
    }
