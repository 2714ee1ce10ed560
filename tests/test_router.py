"""Tests for the bulk user deletion REST API."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from bulkpurge.domain.purge import router as purge_router
from bulkpurge.domain.purge.infrastructure.gate import ExclusivityGate
from bulkpurge.domain.purge.infrastructure.status_publishers import (
    RedisStatusPublisher,
    StatusUpdate,
)
from bulkpurge.domain.purge.settings import DEFAULT_GATE_KEY, DEFAULT_STATUS_KEY, PurgeSettings
from bulkpurge.domain.purge.wiring import create_orchestrator
from bulkpurge.foundation.domain.user_value_objects import TargetUser
from bulkpurge.infra.fastapi import create_app
from bulkpurge.infra.mattermost.settings import FileSettings

ADMIN = {"X-User-ID": "admin"}


class _Accounts:
    def __init__(self, users: list[TargetUser], fail_listing: bool = False) -> None:
        self.users = {u.id: u for u in users}
        self.fail_listing = fail_listing

    async def get_user(self, user_id: str) -> TargetUser:
        if user_id not in self.users:
            request = httpx.Request("GET", f"http://mm.test/api/v4/users/{user_id}")
            raise httpx.HTTPStatusError(
                "not found", request=request, response=httpx.Response(404, request=request)
            )
        return self.users[user_id]

    async def iter_users(self, *, inactive: bool = False):
        if self.fail_listing:
            raise httpx.ConnectError("refused")
        for user in self.users.values():
            if not inactive or not user.is_active:
                yield user


class _Launcher:
    def __init__(self) -> None:
        self.calls: list[tuple[list[dict[str, Any]], bool, str, str]] = []

    async def __call__(
        self, users: list[dict[str, Any]], dry_run: bool, requested_by: str, job_id: str
    ) -> str:
        self.calls.append((users, dry_run, requested_by, job_id))
        return "task-1"


@pytest.fixture()
def accounts() -> _Accounts:
    return _Accounts(
        [
            TargetUser(id="admin", email="root@old.test", roles="system_user system_admin"),
            TargetUser(id="member", email="m@new.test", roles="system_user"),
            TargetUser(id="u1", email="a@old.test", delete_at=1700),
            TargetUser(id="u2", email="b@old.test"),
        ]
    )


@pytest.fixture()
def launcher() -> _Launcher:
    return _Launcher()


@pytest.fixture()
def client(accounts: _Accounts, launcher: _Launcher, fake_redis: Any) -> TestClient:
    app = create_app(extra_routers=[purge_router.router], include_default_lifespan=False)
    app.dependency_overrides[purge_router.get_mattermost_client] = lambda: accounts
    app.dependency_overrides[purge_router.get_redis] = lambda: fake_redis
    app.dependency_overrides[purge_router.get_settings] = lambda: PurgeSettings(
        target_email_suffixes="@old.test"
    )
    app.dependency_overrides[purge_router.get_job_launcher] = lambda: launcher
    return TestClient(app, raise_server_exceptions=False)


def _command(client: TestClient, text: str, headers: dict[str, str] = ADMIN) -> httpx.Response:
    return client.post("/bulk-user-delete", json={"command": text}, headers=headers)


@pytest.mark.unit
class TestBulkUserDelete:
    def test_live_all_enqueues_non_admin_targets(
        self, client: TestClient, launcher: _Launcher
    ) -> None:
        resp = _command(client, "/bulk-user-delete live all")

        assert resp.status_code == 202
        body = resp.json()
        assert body["task_id"] == "task-1"
        assert body["target_users"] == 2
        assert body["message"] == (
            "Starting bulk user deletion job with command: `/bulk-user-delete live all`"
        )
        users, dry_run, requested_by, job_id = launcher.calls[0]
        assert [u["id"] for u in users] == ["u1", "u2"]
        assert dry_run is False
        assert requested_by == "admin"
        assert body["job_id"] == job_id

    def test_dry_run_inactive(self, client: TestClient, launcher: _Launcher) -> None:
        resp = _command(client, "/bulk-user-delete dry-run inactive")

        assert resp.status_code == 202
        users, dry_run, _, _ = launcher.calls[0]
        assert [u["id"] for u in users] == ["u1"]
        assert dry_run is True

    def test_nothing_to_do(
        self, accounts: _Accounts, launcher: _Launcher, client: TestClient
    ) -> None:
        del accounts.users["u1"], accounts.users["u2"]

        resp = _command(client, "/bulk-user-delete live all")

        assert resp.status_code == 200
        assert resp.json()["message"] == (
            "There's nothing to do - there are no matching users to delete."
        )
        assert launcher.calls == []

    def test_non_admin_is_forbidden(self, client: TestClient, launcher: _Launcher) -> None:
        resp = _command(client, "/bulk-user-delete live all", headers={"X-User-ID": "member"})

        assert resp.status_code == 403
        assert resp.json()["detail"].startswith(
            "Only system administrators can run this command."
        )
        assert launcher.calls == []

    def test_unknown_caller_is_forbidden(self, client: TestClient) -> None:
        resp = _command(client, "/bulk-user-delete live all", headers={"X-User-ID": "ghost"})

        assert resp.status_code == 403
        assert resp.json()["detail"].startswith("Could not retrieve running user context")

    def test_invalid_command(self, client: TestClient) -> None:
        resp = _command(client, "/bulk-user-delete live")

        assert resp.status_code == 422
        assert resp.json()["detail"] == (
            "Missing argument. Usage: bulk-user-delete /[mode] [target users]"
        )

    def test_missing_user_header(self, client: TestClient) -> None:
        resp = _command(client, "/bulk-user-delete live all", headers={})

        assert resp.status_code == 422
        assert resp.json()["error_code"] == "REQUEST_VALIDATION_ERROR"

    def test_live_command_while_job_runs_is_a_conflict(
        self, client: TestClient, fake_redis: Any, launcher: _Launcher
    ) -> None:
        fake_redis.data[DEFAULT_GATE_KEY] = "running"

        resp = _command(client, "/bulk-user-delete live all")

        assert resp.status_code == 409
        assert resp.json()["detail"] == "a job is already running"
        assert launcher.calls == []

    def test_dry_run_ignores_running_job(self, client: TestClient, fake_redis: Any) -> None:
        fake_redis.data[DEFAULT_GATE_KEY] = "running"

        assert _command(client, "/bulk-user-delete dry-run all").status_code == 202

    def test_user_listing_failure(self, accounts: _Accounts, client: TestClient) -> None:
        accounts.fail_listing = True

        resp = _command(client, "/bulk-user-delete live all")

        assert resp.status_code == 502
        assert resp.json()["detail"].startswith("Unable to retrieve user list")


@pytest.mark.unit
class TestJobStatus:
    def test_no_job_yet(self, client: TestClient) -> None:
        resp = client.get("/bulk-user-delete/status")

        assert resp.json() == {"running": False, "latest": None}

    def test_latest_update_and_running_flag(self, client: TestClient, fake_redis: Any) -> None:
        fake_redis.data[DEFAULT_GATE_KEY] = "running"
        fake_redis.data[DEFAULT_STATUS_KEY] = json.dumps(
            {"message": "m", "completed": 1, "total": 3, "terminal": False, "succeeded": None}
        )

        body = client.get("/bulk-user-delete/status").json()

        assert body["running"] is True
        assert body["latest"]["completed"] == 1


@pytest.mark.unit
class TestJobStatusById:
    def test_enqueued_job_reports_queued(self, client: TestClient, fake_redis: Any) -> None:
        job_id = _command(client, "/bulk-user-delete live all").json()["job_id"]

        body = client.get(f"/bulk-user-delete/jobs/{job_id}").json()

        assert body["message"].startswith("### Bulk user deletion job queued")
        assert (body["completed"], body["total"], body["terminal"]) == (0, 2, False)
        # the shared surface belongs to the job holding the gate
        assert DEFAULT_STATUS_KEY not in fake_redis.data

    def test_unknown_job(self, client: TestClient) -> None:
        resp = client.get("/bulk-user-delete/jobs/nope")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Unknown job"

    @pytest.mark.asyncio(loop_scope="function")
    async def test_job_losing_the_gate_reports_the_conflict(
        self,
        client: TestClient,
        launcher: _Launcher,
        fake_redis: Any,
        store: Any,
        make_mattermost: Any,
        tmp_path: Any,
    ) -> None:
        first = _command(client, "/bulk-user-delete live all").json()
        second = _command(client, "/bulk-user-delete live all").json()
        assert first["job_id"] != second["job_id"]
        # the first job's worker takes the gate before the second one starts
        assert await ExclusivityGate(fake_redis, key=DEFAULT_GATE_KEY).try_acquire()
        running = StatusUpdate("### Bulk user deletion job started\nDeleted 1/2 users...", 1, 2)
        await RedisStatusPublisher(fake_redis, DEFAULT_STATUS_KEY).publish(running)
        users, _, _, job_id = launcher.calls[1]

        orchestrator = await create_orchestrator(
            make_mattermost(engine=store.engine),
            settings=PurgeSettings(),
            engine=store.engine,
            redis=fake_redis,
            file_settings=FileSettings(driver_name="local", directory=str(tmp_path)),
            job_id=job_id,
        )
        outcome = await orchestrator.run([TargetUser.from_api(user) for user in users])

        assert outcome.error == "a job is already running"
        body = client.get(f"/bulk-user-delete/jobs/{second['job_id']}").json()
        assert body["message"] == (
            "### Bulk user deletion job failed!\na job is already running. Deleted 0/2 users"
        )
        assert body["terminal"] is True
        assert body["succeeded"] is False
        shared = client.get("/bulk-user-delete/status").json()
        assert shared["running"] is True
        assert shared["latest"] == running.as_dict()


@pytest.mark.unit
class TestClearJobLock:
    def test_admin_clears_lock(self, client: TestClient, fake_redis: Any) -> None:
        fake_redis.data[DEFAULT_GATE_KEY] = "stale"

        resp = client.delete("/bulk-user-delete/lock", headers=ADMIN)

        assert resp.status_code == 200
        assert DEFAULT_GATE_KEY not in fake_redis.data

    def test_non_admin_cannot_clear_lock(self, client: TestClient, fake_redis: Any) -> None:
        fake_redis.data[DEFAULT_GATE_KEY] = "stale"

        resp = client.delete("/bulk-user-delete/lock", headers={"X-User-ID": "member"})

        assert resp.status_code == 403
        assert fake_redis.data[DEFAULT_GATE_KEY] == "stale"
