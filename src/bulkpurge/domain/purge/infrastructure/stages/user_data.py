"""Dangling user-derived rows (stage 2).

Rows keyed directly by user id that the account service may leave
behind after a permanent deletion.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.domain.purge.infrastructure.stages.base import (
    ConditionalDeleteStage,
    parent_missing,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Executable


class DanglingUserDataStage(ConditionalDeleteStage):
    name = "dangling user data"

    def statements(self) -> Sequence[tuple[str, Executable]]:
        user_id = s.users.c.id
        # sidebarchannels before sidebarcategories: its rows hang off a category
        return [
            ("status", delete(s.status).where(parent_missing(s.status.c.userid, user_id))),
            (
                "channelmemberhistory",
                delete(s.channelmemberhistory).where(
                    parent_missing(s.channelmemberhistory.c.userid, user_id)
                ),
            ),
            (
                "sidebarchannels",
                delete(s.sidebarchannels).where(
                    parent_missing(s.sidebarchannels.c.userid, user_id)
                ),
            ),
            (
                "sidebarcategories",
                delete(s.sidebarcategories).where(
                    parent_missing(s.sidebarcategories.c.userid, user_id)
                ),
            ),
            (
                "productnoticeviewstate",
                delete(s.productnoticeviewstate).where(
                    parent_missing(s.productnoticeviewstate.c.userid, user_id)
                ),
            ),
            (
                "channelmembers",
                delete(s.channelmembers).where(parent_missing(s.channelmembers.c.userid, user_id)),
            ),
            ("reactions", delete(s.reactions).where(parent_missing(s.reactions.c.userid, user_id))),
            (
                "threadmemberships",
                delete(s.threadmemberships).where(
                    parent_missing(s.threadmemberships.c.userid, user_id)
                ),
            ),
        ]
