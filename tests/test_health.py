"""Tests for aggregated health check endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from bulkpurge.infra.fastapi import _health
from bulkpurge.infra.fastapi._health import router


@pytest.fixture
def health_app() -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    return app


async def _get(app: FastAPI, database: dict[str, str], redis: dict[str, str]):
    with (
        patch(
            "bulkpurge.infra.fastapi._health._check_database",
            new_callable=AsyncMock,
            return_value=database,
        ),
        patch(
            "bulkpurge.infra.fastapi._health._check_redis",
            new_callable=AsyncMock,
            return_value=redis,
        ),
    ):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            return await ac.get("/healthz")


@pytest.mark.unit
class TestHealthz:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_all_healthy(self, health_app: FastAPI) -> None:
        resp = await _get(health_app, {"status": "ok"}, {"status": "ok"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["redis"]["status"] == "ok"

    @pytest.mark.asyncio(loop_scope="function")
    async def test_degraded_when_db_fails(self, health_app: FastAPI) -> None:
        resp = await _get(
            health_app, {"status": "error", "detail": "conn refused"}, {"status": "ok"}
        )

        assert resp.status_code == 503
        assert resp.json()["status"] == "degraded"

    @pytest.mark.asyncio(loop_scope="function")
    async def test_degraded_when_redis_fails(self, health_app: FastAPI) -> None:
        resp = await _get(health_app, {"status": "ok"}, {"status": "error", "detail": "timeout"})

        assert resp.status_code == 503
        assert resp.json()["checks"]["redis"]["detail"] == "timeout"


@pytest.mark.unit
class TestChecks:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_redis_check_reports_ping_failure(self) -> None:
        client = AsyncMock()
        client.ping.side_effect = ConnectionError("refused")
        factory = MagicMock()
        factory.get_client = AsyncMock(return_value=client)

        with patch.object(_health, "get_redis_factory", return_value=factory):
            result = await _health._check_redis()

        assert result == {"status": "error", "detail": "refused"}

    @pytest.mark.asyncio(loop_scope="function")
    async def test_database_check_uses_engine(self, engine) -> None:
        manager = MagicMock()
        manager.get_engine.return_value = engine

        with patch.object(_health, "get_database_manager", return_value=manager):
            result = await _health._check_database()

        assert result == {"status": "ok"}
