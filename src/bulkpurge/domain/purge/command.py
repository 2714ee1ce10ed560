"""The ``/bulk-user-delete`` command.

Usage: ``/bulk-user-delete [mode] [target users]`` where mode is
``dry-run`` or ``live`` and target users is ``inactive`` or ``all``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from bulkpurge.foundation.domain.exceptions import AuthorizationError, ValidationError

if TYPE_CHECKING:
    from bulkpurge.infra.mattermost.client import MattermostClient

TRIGGER = "bulk-user-delete"
USAGE = "[mode] [target users]"

MODE_DRY_RUN = "dry-run"
MODE_LIVE = "live"

USERS_INACTIVE = "inactive"
USERS_ALL = "all"


@dataclass(frozen=True, slots=True)
class PurgeCommand:
    """A validated command.

    Attributes:
        text: The command as typed.
        dry_run: Report the target set without deleting anything.
        inactive_only: Only consider deactivated accounts.
    """

    text: str
    dry_run: bool
    inactive_only: bool

    @property
    def mode(self) -> str:
        return MODE_DRY_RUN if self.dry_run else MODE_LIVE

    @property
    def target(self) -> str:
        return USERS_INACTIVE if self.inactive_only else USERS_ALL


def validate_command(text: str) -> list[str]:
    """Check the command shape.

    Returns:
        The three whitespace-separated fields.

    Raises:
        ValidationError: With the message to show the caller.
    """
    fields = text.split()
    if len(fields) != 3:
        raise ValidationError("command", f"Missing argument. Usage: {TRIGGER} /{USAGE}")
    if fields[0] != f"/{TRIGGER}":
        raise ValidationError("command", f"Invalid command. Usage: {TRIGGER} /{USAGE}")
    if fields[1] not in (MODE_DRY_RUN, MODE_LIVE):
        raise ValidationError("mode", f"Invalid mode. Must be '{MODE_DRY_RUN}' or '{MODE_LIVE}'")
    if fields[2] not in (USERS_INACTIVE, USERS_ALL):
        raise ValidationError(
            "target_users",
            f"Invalid target users. Must be '{USERS_INACTIVE}' or '{USERS_ALL}'",
        )
    return fields


def parse_command(text: str) -> PurgeCommand:
    """Validate and parse a command.

    Example:
        >>> parse_command("/bulk-user-delete dry-run inactive")
        PurgeCommand(text='/bulk-user-delete dry-run inactive', dry_run=True, inactive_only=True)
    """
    _, mode, target = validate_command(text)
    return PurgeCommand(
        text=text, dry_run=mode == MODE_DRY_RUN, inactive_only=target == USERS_INACTIVE
    )


async def require_system_admin(client: MattermostClient, user_id: str) -> None:
    """Allow only system administrators to run the command.

    Raises:
        AuthorizationError: If the user cannot be fetched or is not an admin.
    """
    try:
        user = await client.get_user(user_id)
    except httpx.HTTPError as exc:
        raise AuthorizationError(
            f"Could not retrieve running user context: {exc}", {"user_id": user_id}
        ) from exc
    if not user.is_system_admin:
        raise AuthorizationError(
            "Only system administrators can run this command.", {"user_id": user_id}
        )
