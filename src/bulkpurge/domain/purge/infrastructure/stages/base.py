"""Stage building blocks.

A stage deletes every row of one entity family that fails an existence
predicate against its parent or user. Running a stage when nothing
qualifies is a no-op, so every stage is safe to re-run.

Two shapes cover all cleanup stages:

- :class:`ConditionalDeleteStage`: a handful of small reference tables,
  one conditional DELETE per table, all inside one stage transaction.
- :class:`CascadeStage`: an unbounded family purged through the
  :class:`~bulkpurge.domain.purge.infrastructure.batch_deleter.BatchCursorDeleter`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bulkpurge.foundation.domain.exceptions import TransactionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement, Executable
    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.sql.schema import Column

    from bulkpurge.domain.purge.infrastructure.batch_deleter import (
        BatchCursorDeleter,
        CascadePlan,
    )

logger = logging.getLogger(__name__)


def parent_missing(child: Column[str], parent: Column[str]) -> ColumnElement[bool]:
    """NOT EXISTS predicate: no ``parent`` row matches ``child``.

    Example:
        >>> delete(status).where(parent_missing(status.c.userid, users.c.id))
    """
    return ~select(parent).where(parent == child).correlate(child.table).exists()


def children_missing(parent: Column[str], child: Column[str]) -> ColumnElement[bool]:
    """NOT EXISTS predicate: no ``child`` row references ``parent``.

    Example:
        >>> select(boards.c.id).where(children_missing(boards.c.id, members.c.board_id))
    """
    return ~select(child).where(child == parent).correlate(parent.table).exists()


class Stage(ABC):
    """One named, idempotent cleanup unit."""

    name: ClassVar[str]

    @abstractmethod
    async def run(self) -> int:
        """Purge the family.

        Returns:
            Number of rows (or remote entities) removed.
        """


class ConditionalDeleteStage(Stage):
    """Issues one conditional DELETE per table inside a single transaction.

    Subclasses list their statements in :meth:`statements`, in the order
    they must run.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @abstractmethod
    def statements(self) -> Sequence[tuple[str, Executable]]:
        """Return ``(table label, DELETE statement)`` pairs."""

    async def run(self) -> int:
        deleted_total = 0
        label = ""
        try:
            async with self._engine.begin() as conn:
                for label, statement in self.statements():
                    result = await conn.execute(statement)
                    deleted = max(result.rowcount, 0)
                    deleted_total += deleted
                    if deleted:
                        logger.debug(
                            "stage_rows_deleted",
                            extra={"stage": self.name, "table": label, "deleted": deleted},
                        )
        except SQLAlchemyError as exc:
            raise TransactionError(
                f"purge {label} for {self.name}", str(exc), stage=self.name, table=label
            ) from exc

        logger.info("stage_completed", extra={"stage": self.name, "deleted": deleted_total})
        return deleted_total


class CascadeStage(Stage):
    """Purges an unbounded family batch by batch."""

    def __init__(self, deleter: BatchCursorDeleter) -> None:
        self._deleter = deleter

    @abstractmethod
    def plan(self) -> CascadePlan:
        """Describe the candidates and their dependents."""

    async def run(self) -> int:
        result = await self._deleter.run(self.plan())
        logger.info(
            "stage_completed",
            extra={
                "stage": self.name,
                "deleted": result.total_deleted,
                "iterations": result.iterations,
            },
        )
        return result.total_deleted
