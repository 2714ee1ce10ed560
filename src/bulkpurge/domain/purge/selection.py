"""Target user discovery."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bulkpurge.foundation.domain.user_value_objects import filter_users_by_emails

if TYPE_CHECKING:
    from bulkpurge.domain.purge.settings import PurgeSettings
    from bulkpurge.foundation.domain.user_value_objects import TargetUser
    from bulkpurge.infra.mattermost.client import MattermostClient

logger = logging.getLogger(__name__)


async def select_target_users(
    client: MattermostClient,
    settings: PurgeSettings,
    *,
    inactive_only: bool,
) -> list[TargetUser]:
    """List every account and keep the ones matching the configured emails.

    System administrators are never selected.

    Args:
        client: Account service client.
        settings: Purge settings holding the email suffixes and addresses.
        inactive_only: Only consider deactivated accounts.

    Raises:
        httpx.HTTPError: If a page of users could not be fetched.
    """
    users = [user async for user in client.iter_users(inactive=inactive_only)]
    targets = filter_users_by_emails(
        users, settings.target_email_suffixes, settings.target_email_addresses
    )
    logger.info(
        "target_users_selected",
        extra={"listed": len(users), "selected": len(targets), "inactive_only": inactive_only},
    )
    return targets
