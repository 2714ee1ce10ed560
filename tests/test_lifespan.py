"""Tests for lifespan composition and the infrastructure lifespan hooks."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bulkpurge.foundation.application import LifespanContribution
from bulkpurge.infra.fastapi.lifespan import compose_lifespan
from bulkpurge.infra.persistence import lifespan as persistence_lifespan
from bulkpurge.infra.taskiq import lifespan as taskiq_lifespan


def _recording_hook(name: str, events: list[str]) -> Any:
    @asynccontextmanager
    async def hook(app: Any):
        events.append(f"start:{name}")
        try:
            yield
        finally:
            events.append(f"stop:{name}")

    return hook


@pytest.mark.unit
class TestComposeLifespan:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_priority_order_with_stack_shutdown(self) -> None:
        events: list[str] = []
        lifespan = compose_lifespan(
            [
                LifespanContribution(hook=_recording_hook("taskiq", events), priority=150),
                LifespanContribution(hook=_recording_hook("logging", events), priority=50),
                LifespanContribution(hook=_recording_hook("db", events), priority=75),
            ]
        )

        async with lifespan(MagicMock()):
            events.append("serving")

        assert events == [
            "start:logging",
            "start:db",
            "start:taskiq",
            "serving",
            "stop:taskiq",
            "stop:db",
            "stop:logging",
        ]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_empty_hooks(self) -> None:
        async with compose_lifespan([])(MagicMock()):
            pass


@pytest.mark.unit
class TestPersistenceLifespan:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_checks_database_then_disposes(self, engine) -> None:
        manager = MagicMock()
        manager.get_engine.return_value = engine
        manager.dispose = AsyncMock()
        factory = MagicMock()
        factory.close = AsyncMock()

        with (
            patch.object(persistence_lifespan, "get_database_manager", return_value=manager),
            patch.object(persistence_lifespan, "get_redis_factory", return_value=factory),
        ):
            async with persistence_lifespan.lifespan_contribution.hook(MagicMock()):
                manager.dispose.assert_not_awaited()

        manager.dispose.assert_awaited_once()
        factory.close.assert_awaited_once()


@pytest.mark.unit
class TestTaskiqLifespan:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_starts_and_shuts_down_broker(self) -> None:
        broker = MagicMock()
        broker.startup = AsyncMock()
        broker.shutdown = AsyncMock()

        with patch.object(taskiq_lifespan, "get_broker", return_value=broker):
            async with taskiq_lifespan.lifespan_contribution.hook(MagicMock()):
                broker.startup.assert_awaited_once()
                broker.shutdown.assert_not_awaited()

        broker.shutdown.assert_awaited_once()
