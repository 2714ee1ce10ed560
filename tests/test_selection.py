"""Tests for target user discovery."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from bulkpurge.domain.purge.selection import select_target_users
from bulkpurge.domain.purge.settings import PurgeSettings
from bulkpurge.foundation.domain.user_value_objects import TargetUser


def _client(users: list[TargetUser]) -> MagicMock:
    seen: dict[str, bool] = {}

    async def iter_users(*, inactive: bool = False):
        seen["inactive"] = inactive
        for user in users:
            yield user

    client = MagicMock()
    client.iter_users = iter_users
    client.seen = seen
    return client


@pytest.mark.unit
class TestSelectTargetUsers:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_selects_matching_non_admins(self) -> None:
        client = _client(
            [
                TargetUser(id="u1", email="a@old.test"),
                TargetUser(id="u2", email="root@old.test", roles="system_user system_admin"),
                TargetUser(id="u3", email="x@new.test"),
            ]
        )
        settings = PurgeSettings(target_email_suffixes="@old.test")

        targets = await select_target_users(client, settings, inactive_only=True)

        assert [u.id for u in targets] == ["u1"]
        assert client.seen["inactive"] is True

    @pytest.mark.asyncio(loop_scope="function")
    async def test_no_configured_targets_selects_nobody(self) -> None:
        client = _client([TargetUser(id="u1", email="a@old.test")])

        assert await select_target_users(client, PurgeSettings(), inactive_only=False) == []
