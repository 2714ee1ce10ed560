"""Bulk user deletion REST API router.

``POST /bulk-user-delete`` is the command entry point. It checks the
caller, validates the command, picks the target users and enqueues the
job, then answers at once with the job id. Every job reports under its
own id (``GET /bulk-user-delete/jobs/{job_id}``); the job holding the
gate also reports on the shared surface (``GET /bulk-user-delete/status``).
"""

# NOTE: Do NOT use ``from __future__ import annotations`` here.
# FastAPI dependency injection needs runtime-evaluable type annotations.

import uuid
from collections.abc import AsyncIterator
from typing import Annotated, Any, Protocol

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from pydantic import BaseModel, Field
from redis.asyncio import Redis

from bulkpurge.domain.purge.command import parse_command, require_system_admin
from bulkpurge.domain.purge.infrastructure.gate import ExclusivityGate
from bulkpurge.domain.purge.infrastructure.status_publishers import (
    NOTHING_TO_DO,
    RedisStatusPublisher,
    StatusUpdate,
    queued_message,
)
from bulkpurge.domain.purge.selection import select_target_users
from bulkpurge.domain.purge.settings import PurgeSettings, get_purge_settings
from bulkpurge.domain.purge.tasks import run_purge_job
from bulkpurge.domain.purge.wiring import exclusivity_gate, job_status_store, status_store
from bulkpurge.foundation.domain.exceptions import ExclusivityConflictError
from bulkpurge.infra.mattermost.client import MattermostClient
from bulkpurge.infra.observability.logging import get_logger
from bulkpurge.infra.persistence.redis_client import get_redis_factory

router = APIRouter(prefix="/bulk-user-delete", tags=["bulk-user-delete"])
logger = get_logger(__name__)


# -- Request / Response models ------------------------------------------------


class CommandRequest(BaseModel):
    command: str = Field(..., examples=["/bulk-user-delete dry-run inactive"])


class CommandResponse(BaseModel):
    message: str
    job_id: str | None = None
    task_id: str | None = None
    target_users: int = 0


class StatusUpdateResponse(BaseModel):
    message: str
    completed: int
    total: int
    terminal: bool
    succeeded: bool | None = None


class JobStatusResponse(BaseModel):
    running: bool
    latest: StatusUpdateResponse | None = None


class MessageResponse(BaseModel):
    message: str


# -- Dependencies -------------------------------------------------------------


class JobLauncher(Protocol):
    """Starts a purge job in the background and returns its task id."""

    async def __call__(
        self, users: list[dict[str, Any]], dry_run: bool, requested_by: str, job_id: str
    ) -> str: ...


async def enqueue_purge_job(
    users: list[dict[str, Any]], dry_run: bool, requested_by: str, job_id: str
) -> str:
    task = await run_purge_job.kiq(users, dry_run, requested_by, job_id)
    return task.task_id


async def get_mattermost_client() -> AsyncIterator[MattermostClient]:
    client = MattermostClient()
    try:
        yield client
    finally:
        await client.aclose()


async def get_redis() -> Redis:
    return await get_redis_factory().get_client()


def get_settings() -> PurgeSettings:
    return get_purge_settings()


def get_gate(
    redis: Annotated[Redis, Depends(get_redis)],
    settings: Annotated[PurgeSettings, Depends(get_settings)],
) -> ExclusivityGate:
    return exclusivity_gate(redis, settings)


def get_status_store(
    redis: Annotated[Redis, Depends(get_redis)],
    settings: Annotated[PurgeSettings, Depends(get_settings)],
) -> RedisStatusPublisher:
    return status_store(redis, settings)


def get_job_launcher() -> JobLauncher:
    return enqueue_purge_job


MattermostDep = Annotated[MattermostClient, Depends(get_mattermost_client)]
GateDep = Annotated[ExclusivityGate, Depends(get_gate)]
UserIdHeader = Annotated[str, Header(alias="X-User-ID")]


# -- Endpoints ----------------------------------------------------------------


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def bulk_user_delete(
    body: CommandRequest,
    response: Response,
    user_id: UserIdHeader,
    client: MattermostDep,
    gate: GateDep,
    redis: Annotated[Redis, Depends(get_redis)],
    settings: Annotated[PurgeSettings, Depends(get_settings)],
    launch: Annotated[JobLauncher, Depends(get_job_launcher)],
) -> CommandResponse:
    """Run ``/bulk-user-delete [dry-run|live] [inactive|all]``.

    Returns 202 once the job is enqueued, or 200 when no user matches.
    A job rejected by the gate after it was enqueued reports the conflict
    under its own id.
    """
    logger.info("bulk_user_delete_triggered", user_id=user_id, command=body.command)

    await require_system_admin(client, user_id)
    command = parse_command(body.command)

    # Fail fast while a job runs; the job itself re-checks atomically.
    if not command.dry_run and await gate.is_held():
        raise ExclusivityConflictError(gate.key)

    try:
        users = await select_target_users(client, settings, inactive_only=command.inactive_only)
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Unable to retrieve user list: {exc}",
        ) from exc

    if not users:
        response.status_code = status.HTTP_200_OK
        return CommandResponse(message=NOTHING_TO_DO)

    job_id = uuid.uuid4().hex
    await job_status_store(redis, job_id, settings).publish(
        StatusUpdate(queued_message(len(users)), 0, len(users))
    )
    task_id = await launch([user.as_dict() for user in users], command.dry_run, user_id, job_id)
    return CommandResponse(
        message=f"Starting bulk user deletion job with command: `{command.text}`",
        job_id=job_id,
        task_id=task_id,
        target_users=len(users),
    )


@router.get("/status")
async def job_status(
    gate: GateDep,
    store: Annotated[RedisStatusPublisher, Depends(get_status_store)],
) -> JobStatusResponse:
    """Whether a job holds the gate, and the last update of the job holding it."""
    latest = await store.latest()
    return JobStatusResponse(
        running=await gate.is_held(),
        latest=StatusUpdateResponse(**latest.as_dict()) if latest is not None else None,
    )


@router.get("/jobs/{job_id}")
async def job_status_by_id(
    job_id: str,
    redis: Annotated[Redis, Depends(get_redis)],
    settings: Annotated[PurgeSettings, Depends(get_settings)],
) -> StatusUpdateResponse:
    """The last status update of one job, including a rejection by the gate."""
    latest = await job_status_store(redis, job_id, settings).latest()
    if latest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown job")
    return StatusUpdateResponse(**latest.as_dict())


@router.delete("/lock")
async def clear_job_lock(
    user_id: UserIdHeader,
    client: MattermostDep,
    gate: GateDep,
) -> MessageResponse:
    """Clear a gate left behind by a job that died while holding it."""
    await require_system_admin(client, user_id)
    await gate.clear()
    logger.warning("job_lock_cleared", user_id=user_id, gate_key=gate.key)
    return MessageResponse(message="Job lock cleared")
