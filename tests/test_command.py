"""Tests for command parsing and the administrator check."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from bulkpurge.domain.purge.command import parse_command, require_system_admin
from bulkpurge.foundation.domain.exceptions import AuthorizationError, ValidationError
from bulkpurge.foundation.domain.user_value_objects import TargetUser


@pytest.mark.unit
class TestParseCommand:
    @pytest.mark.parametrize(
        ("text", "dry_run", "inactive_only"),
        [
            ("/bulk-user-delete dry-run inactive", True, True),
            ("/bulk-user-delete dry-run all", True, False),
            ("/bulk-user-delete live inactive", False, True),
            ("/bulk-user-delete   live   all ", False, False),
        ],
    )
    def test_valid_commands(self, text: str, dry_run: bool, inactive_only: bool) -> None:
        command = parse_command(text)

        assert command.dry_run is dry_run
        assert command.inactive_only is inactive_only
        assert command.text == text

    def test_mode_and_target_properties(self) -> None:
        command = parse_command("/bulk-user-delete live inactive")

        assert command.mode == "live"
        assert command.target == "inactive"

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            (
                "/bulk-user-delete",
                "Missing argument. Usage: bulk-user-delete /[mode] [target users]",
            ),
            (
                "/bulk-user-delete live",
                "Missing argument. Usage: bulk-user-delete /[mode] [target users]",
            ),
            (
                "/bulk-user-delete live all extra",
                "Missing argument. Usage: bulk-user-delete /[mode] [target users]",
            ),
            (
                "/other-command live all",
                "Invalid command. Usage: bulk-user-delete /[mode] [target users]",
            ),
            ("/bulk-user-delete now all", "Invalid mode. Must be 'dry-run' or 'live'"),
            (
                "/bulk-user-delete live everyone",
                "Invalid target users. Must be 'inactive' or 'all'",
            ),
        ],
    )
    def test_invalid_commands(self, text: str, message: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_command(text)

        assert str(exc_info.value) == message


@pytest.mark.unit
class TestRequireSystemAdmin:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_admin_passes(self) -> None:
        client = AsyncMock()
        client.get_user.return_value = TargetUser(
            id="admin", email="admin@x.test", roles="system_user system_admin"
        )

        await require_system_admin(client, "admin")

        client.get_user.assert_awaited_once_with("admin")

    @pytest.mark.asyncio(loop_scope="function")
    async def test_non_admin_is_rejected(self) -> None:
        client = AsyncMock()
        client.get_user.return_value = TargetUser(id="u", email="u@x.test", roles="system_user")

        with pytest.raises(AuthorizationError) as exc_info:
            await require_system_admin(client, "u")

        assert exc_info.value.message == "Only system administrators can run this command."

    @pytest.mark.asyncio(loop_scope="function")
    async def test_lookup_failure_is_rejected(self) -> None:
        client = AsyncMock()
        client.get_user.side_effect = httpx.ConnectError("refused")

        with pytest.raises(AuthorizationError) as exc_info:
            await require_system_admin(client, "u")

        assert exc_info.value.message.startswith("Could not retrieve running user context")
