"""Empty channel removal (stage 9).

Channels with no members are removed through the channel service, one
at a time. After each removal the playbook and sidebar rows scoped to
that channel are deleted in their own transaction.

Candidates are paged by id so a channel the service reports as removed
but that is still present is not selected again.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.domain.purge.infrastructure.stages.base import Stage, children_missing
from bulkpurge.domain.purge.settings import DEFAULT_BATCH_SIZE
from bulkpurge.foundation.domain.exceptions import ExternalServiceError, TransactionError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class ChannelService(Protocol):
    """Remote capability that permanently deletes channels."""

    async def delete_channel(self, channel_id: str) -> int: ...


_CHANNEL_SCOPED = (
    (s.ir_channelaction, s.ir_channelaction.c.channelid),
    (s.ir_viewedchannel, s.ir_viewedchannel.c.channelid),
    (s.sidebarchannels, s.sidebarchannels.c.channelid),
)


class EmptyChannelsStage(Stage):
    """Removes channels left with zero members.

    Args:
        engine: Async engine used to find candidates and clean up after them.
        channels: Channel service client.
        page_size: Candidates fetched per page.
    """

    name = "empty channels"

    def __init__(
        self,
        engine: AsyncEngine,
        channels: ChannelService,
        page_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._engine = engine
        self._channels = channels
        self._page_size = page_size

    async def run(self) -> int:
        removed = 0
        after = ""
        while True:
            page = await self._next_page(after)
            if not page:
                break
            for channel_id in page:
                await self._remove(channel_id)
                removed += 1
            after = page[-1]

        logger.info("stage_completed", extra={"stage": self.name, "deleted": removed})
        return removed

    async def _next_page(self, after: str) -> list[str]:
        channels = s.channels
        query = (
            select(channels.c.id)
            .where(
                and_(
                    channels.c.id > after,
                    children_missing(channels.c.id, s.channelmembers.c.channelid),
                )
            )
            .order_by(channels.c.id)
            .limit(self._page_size)
        )
        try:
            async with self._engine.connect() as conn:
                return list((await conn.execute(query)).scalars().all())
        except SQLAlchemyError as exc:
            raise TransactionError("find empty channels", str(exc)) from exc

    async def _remove(self, channel_id: str) -> None:
        status_code = await self._channels.delete_channel(channel_id)
        if status_code != HTTPStatus.OK:
            raise ExternalServiceError("channel", "delete channel", status_code, channel_id)

        try:
            async with self._engine.begin() as conn:
                for table, column in _CHANNEL_SCOPED:
                    await conn.execute(delete(table).where(column == channel_id))
        except SQLAlchemyError as exc:
            raise TransactionError(
                "delete channel scoped rows", str(exc), channel_id=channel_id
            ) from exc
        logger.info("channel_deleted", extra={"channel_id": channel_id})
