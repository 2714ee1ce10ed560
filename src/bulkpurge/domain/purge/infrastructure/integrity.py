"""Orphan scan over the references the purge stages maintain.

After a completed run no row may reference a missing user or parent.
:func:`find_orphans` counts violations per reference so an operator (or
a test) can check that directly against the store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, func, select

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.domain.purge.infrastructure.stages.base import parent_missing

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncConnection
    from sqlalchemy.sql.schema import Column

# (label, child column, parent column, extra condition on the child row)
_REFERENCES: list[tuple[str, Column[str], Column[str], ColumnElement[bool] | None]] = [
    ("posts.userid", s.posts.c.userid, s.users.c.id, None),
    ("threads.postid", s.threads.c.postid, s.posts.c.id, None),
    ("threadmemberships.postid", s.threadmemberships.c.postid, s.posts.c.id, None),
    ("threadmemberships.userid", s.threadmemberships.c.userid, s.users.c.id, None),
    ("reactions.userid", s.reactions.c.userid, s.users.c.id, None),
    ("reactions.postid", s.reactions.c.postid, s.posts.c.id, None),
    ("status.userid", s.status.c.userid, s.users.c.id, None),
    ("channelmembers.userid", s.channelmembers.c.userid, s.users.c.id, None),
    ("channelmemberhistory.userid", s.channelmemberhistory.c.userid, s.users.c.id, None),
    ("sidebarcategories.userid", s.sidebarcategories.c.userid, s.users.c.id, None),
    ("sidebarchannels.userid", s.sidebarchannels.c.userid, s.users.c.id, None),
    ("productnoticeviewstate.userid", s.productnoticeviewstate.c.userid, s.users.c.id, None),
    (
        "focalboard_board_members.user_id",
        s.focalboard_board_members.c.user_id,
        s.users.c.id,
        s.focalboard_board_members.c.user_id != s.BOARDS_SYSTEM_USER_ID,
    ),
    ("focalboard_blocks.board_id", s.focalboard_blocks.c.board_id, s.focalboard_boards.c.id, None),
    (
        "focalboard_blocks_history.board_id",
        s.focalboard_blocks_history.c.board_id,
        s.focalboard_boards.c.id,
        None,
    ),
    ("ir_category.userid", s.ir_category.c.userid, s.users.c.id, None),
    ("ir_category_item.categoryid", s.ir_category_item.c.categoryid, s.ir_category.c.id, None),
    ("ir_playbookautofollow.userid", s.ir_playbookautofollow.c.userid, s.users.c.id, None),
    (
        "ir_playbookautofollow.playbookid",
        s.ir_playbookautofollow.c.playbookid,
        s.ir_playbook.c.id,
        None,
    ),
    ("ir_playbookmember.memberid", s.ir_playbookmember.c.memberid, s.users.c.id, None),
    ("ir_run_participants.userid", s.ir_run_participants.c.userid, s.users.c.id, None),
    ("ir_viewedchannel.userid", s.ir_viewedchannel.c.userid, s.users.c.id, None),
    ("ir_userinfo.id", s.ir_userinfo.c.id, s.users.c.id, None),
    ("ir_metric.incidentid", s.ir_metric.c.incidentid, s.ir_incident.c.id, None),
    ("ir_metric.metricconfigid", s.ir_metric.c.metricconfigid, s.ir_metricconfig.c.id, None),
    ("ir_statusposts.incidentid", s.ir_statusposts.c.incidentid, s.ir_incident.c.id, None),
    ("ir_timelineevent.incidentid", s.ir_timelineevent.c.incidentid, s.ir_incident.c.id, None),
    ("ir_metricconfig.playbookid", s.ir_metricconfig.c.playbookid, s.ir_playbook.c.id, None),
    ("ir_channelaction.channelid", s.ir_channelaction.c.channelid, s.channels.c.id, None),
]


async def find_orphans(conn: AsyncConnection) -> dict[str, int]:
    """Count rows whose user or parent reference points at nothing.

    Args:
        conn: Open connection to the store.

    Returns:
        Mapping of ``"table.column"`` to the number of orphaned rows, only
        for references with at least one orphan. Empty when the store is
        consistent.
    """
    orphans: dict[str, int] = {}
    for label, child, parent, condition in _REFERENCES:
        predicate = parent_missing(child, parent)
        if condition is not None:
            predicate = and_(predicate, condition)
        query = select(func.count()).select_from(child.table).where(predicate)
        count = (await conn.execute(query)).scalar_one()
        if count:
            orphans[label] = count
    return orphans
