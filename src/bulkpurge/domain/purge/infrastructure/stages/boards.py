"""Board cleanup (stages 3 and 4)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import and_, delete, func, select

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.domain.purge.infrastructure.batch_deleter import CascadePlan, DependentDelete
from bulkpurge.domain.purge.infrastructure.stages.base import (
    CascadeStage,
    ConditionalDeleteStage,
    children_missing,
    parent_missing,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement, Executable, Select
    from sqlalchemy.ext.asyncio import AsyncConnection

    from bulkpurge.domain.purge.infrastructure.batch_deleter import BatchCursorDeleter
    from bulkpurge.infra.mattermost.file_store import LocalFileStore

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "/"


class DanglingBoardMembersStage(ConditionalDeleteStage):
    """Board memberships of deleted users. The boards ``system`` member stays."""

    name = "dangling board members"

    def statements(self) -> Sequence[tuple[str, Executable]]:
        members = s.focalboard_board_members
        return [
            (
                "focalboard_board_members",
                delete(members).where(
                    and_(
                        parent_missing(members.c.user_id, s.users.c.id),
                        members.c.user_id != s.BOARDS_SYSTEM_USER_ID,
                    )
                ),
            )
        ]


def _like_escaped(value: ColumnElement[str]) -> ColumnElement[str]:
    """Escape LIKE wildcards in a column value, so it matches literally.

    ``autoescape`` only applies to Python strings, not to SQL expressions.
    """
    for char in (LIKE_ESCAPE, "%", "_"):
        value = func.replace(value, char, LIKE_ESCAPE + char)
    return value


def unreferenced_board_files() -> Select[tuple[str, str]]:
    """SELECT of board attachments no remaining block points at.

    A block references a file when its ``fields.fileId`` is non-empty and
    the stored path ends with it.
    """
    blocks = s.focalboard_blocks
    fileinfo = s.fileinfo
    file_id = blocks.c.fields["fileId"].as_string()
    referenced = (
        select(blocks.c.id)
        .where(
            and_(
                file_id != "",
                fileinfo.c.path.endswith(_like_escaped(file_id), escape=LIKE_ESCAPE),
            )
        )
        .correlate(fileinfo)
        .exists()
    )
    return (
        select(fileinfo.c.id, fileinfo.c.path)
        .where(and_(fileinfo.c.creatorid == s.BOARDS_FILE_CREATOR_ID, ~referenced))
        .order_by(fileinfo.c.id)
    )


class EmptyBoardsStage(CascadeStage):
    """Boards with no members, with their blocks, history and attachments.

    Attachment rows are only removed once no remaining block references
    them; their files are removed from the local file store first. Files
    already missing on disk are skipped with a warning.

    Args:
        deleter: Batch cursor deleter.
        files: Local file store holding board attachments.
    """

    name = "empty boards"

    def __init__(self, deleter: BatchCursorDeleter, files: LocalFileStore) -> None:
        super().__init__(deleter)
        self._files = files

    def plan(self) -> CascadePlan:
        boards = s.focalboard_boards
        return CascadePlan(
            name=self.name,
            candidates=select(boards.c.id)
            .where(children_missing(boards.c.id, s.focalboard_board_members.c.board_id))
            .order_by(boards.c.id),
            dependents=(
                DependentDelete(
                    "focalboard_blocks",
                    lambda ids: delete(s.focalboard_blocks).where(
                        s.focalboard_blocks.c.board_id.in_(ids)
                    ),
                ),
                DependentDelete(
                    "focalboard_blocks_history",
                    lambda ids: delete(s.focalboard_blocks_history).where(
                        s.focalboard_blocks_history.c.board_id.in_(ids)
                    ),
                ),
                DependentDelete(
                    "focalboard_boards_history",
                    lambda ids: delete(s.focalboard_boards_history).where(
                        s.focalboard_boards_history.c.id.in_(ids)
                    ),
                ),
            ),
            before_delete=self._remove_board_files,
            delete_candidates=lambda ids: delete(boards).where(boards.c.id.in_(ids)),
        )

    async def _remove_board_files(self, conn: AsyncConnection, board_ids: Sequence[str]) -> int:
        rows = (await conn.execute(unreferenced_board_files())).all()
        if not rows:
            return 0

        for _, path in rows:
            self._files.remove_if_exists(path)

        result = await conn.execute(
            delete(s.fileinfo).where(s.fileinfo.c.id.in_([file_id for file_id, _ in rows]))
        )
        logger.info(
            "board_files_deleted",
            extra={"boards": len(board_ids), "files": max(result.rowcount, 0)},
        )
        return max(result.rowcount, 0)
