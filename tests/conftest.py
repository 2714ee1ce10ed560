"""Shared fixtures: a throwaway copy of the store and in-memory fakes.

Tests run with ``--import-mode=importlib``, so helpers are handed out as
fixtures rather than imported from this module.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import pytest_asyncio
from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.foundation.domain.user_value_objects import TargetUser

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncEngine


class Store:
    """Seeding and inspection helpers over the test engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def seed(self, table: Table, *rows: dict[str, Any]) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(insert(table), list(rows))

    async def count(self, table: Table) -> int:
        async with self.engine.connect() as conn:
            return (await conn.execute(select(func.count()).select_from(table))).scalar_one()

    async def values(self, table: Table, name: str) -> list[Any]:
        async with self.engine.connect() as conn:
            return sorted((await conn.execute(select(table.c[name]))).scalars().all())


class FakeRedis:
    """The handful of Redis commands the gate and status store use."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiries: dict[str, int | None] = {}

    async def set(
        self, key: str, value: str, nx: bool = False, ex: int | None = None
    ) -> bool | None:
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.expiries[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.data)

    async def eval(self, script: str, numkeys: int, key: str, token: str) -> int:
        """Compare-and-delete, the only script the gate runs."""
        if self.data.get(key) != token:
            return 0
        return await self.delete(key)

    async def ping(self) -> bool:
        return True


class FakeMattermost:
    """Account and channel service double.

    ``user_statuses`` / ``channel_statuses`` map ids to the status code to
    return; anything unlisted answers 200. With an engine attached, a
    successful deletion also removes the user or channel row, the way the
    real server does.
    """

    def __init__(
        self,
        user_statuses: dict[str, int] | None = None,
        channel_statuses: dict[str, int] | None = None,
        engine: AsyncEngine | None = None,
    ) -> None:
        self.user_statuses = user_statuses or {}
        self.channel_statuses = channel_statuses or {}
        self.engine = engine
        self.deleted_users: list[str] = []
        self.deleted_channels: list[str] = []

    async def delete_user(self, user_id: str) -> int:
        code = self.user_statuses.get(user_id, 200)
        if code == 200:
            self.deleted_users.append(user_id)
            await self._remove_row(s.users, user_id)
        return code

    async def delete_channel(self, channel_id: str) -> int:
        code = self.channel_statuses.get(channel_id, 200)
        if code == 200:
            self.deleted_channels.append(channel_id)
            await self._remove_row(s.channels, channel_id)
        return code

    async def _remove_row(self, table: Table, row_id: str) -> None:
        if self.engine is None:
            return
        async with self.engine.begin() as conn:
            await conn.execute(delete(table).where(table.c.id == row_id))


@pytest_asyncio.fixture(loop_scope="function")
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite store with every purged table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(s.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def store(engine: AsyncEngine) -> Store:
    return Store(engine)


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def make_mattermost() -> Callable[..., FakeMattermost]:
    return FakeMattermost


@pytest.fixture()
def target_users() -> list[TargetUser]:
    return [
        TargetUser(id="u1", email="a@old.test"),
        TargetUser(id="u2", email="b@old.test"),
        TargetUser(id="u3", email="c@old.test"),
    ]
