"""Batch cursor deletion of unbounded row sets.

The loop every unbounded stage is built on:

1. Select up to ``batch_size`` candidate ids.
2. If the selection is empty, stop.
3. Otherwise, in one transaction, delete every dependent row that
   references those ids, then the candidates themselves, and commit.
4. Repeat.

Each iteration is atomic. A failure rolls back the current iteration
only; iterations committed before it stay committed, so re-running after
a crash simply re-selects whatever still qualifies. Iterations never
overlap: each selection must observe the previous iteration's commit.

An iteration that selects candidates but deletes none of them would
select the same candidates forever; it raises
:class:`~bulkpurge.foundation.domain.exceptions.TransactionError` instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from bulkpurge.domain.purge.settings import DEFAULT_BATCH_SIZE
from bulkpurge.foundation.domain.exceptions import TransactionError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from sqlalchemy import Executable, Select
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

    StatementBuilder = Callable[[Sequence[str]], Executable]
    BatchHook = Callable[[AsyncConnection, Sequence[str]], Awaitable[int]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DependentDelete:
    """A delete of rows that reference a batch of candidate ids.

    Attributes:
        label: Short name used in logs and error messages.
        build: Builds the DELETE statement for one batch of ids.
    """

    label: str
    build: StatementBuilder


@dataclass(frozen=True, slots=True)
class CascadePlan:
    """Everything the deleter needs to purge one entity family.

    Attributes:
        name: Family name, e.g. ``"empty boards"``.
        candidates: Single-column SELECT of qualifying ids, without LIMIT.
        delete_candidates: Builds the DELETE of the candidate rows.
        dependents: Dependent deletes, issued in order before the candidates.
        before_delete: Optional hook run inside the batch transaction after
            the dependents and before the candidates are deleted. Returns
            the number of rows it removed.
    """

    name: str
    candidates: Select[tuple[str]]
    delete_candidates: StatementBuilder
    dependents: tuple[DependentDelete, ...] = ()
    before_delete: BatchHook | None = None


@dataclass
class BatchRunResult:
    """Counts accumulated over all committed iterations of one plan."""

    plan: str
    iterations: int = 0
    candidates_deleted: int = 0
    dependents_deleted: int = 0

    @property
    def total_deleted(self) -> int:
        return self.candidates_deleted + self.dependents_deleted


class BatchCursorDeleter:
    """Runs :class:`CascadePlan` instances in bounded transactions.

    Args:
        engine: Async engine; every iteration opens its own transaction.
        batch_size: Maximum candidates per iteration.
    """

    def __init__(self, engine: AsyncEngine, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self._engine = engine
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def run(self, plan: CascadePlan) -> BatchRunResult:
        """Delete every candidate of ``plan`` (and its dependents) batch by batch.

        For K candidates this commits exactly ceil(K / batch_size)
        iterations; for K = 0 it commits none.

        Args:
            plan: The family to purge.

        Returns:
            Counts of committed iterations and deleted rows.

        Raises:
            TransactionError: If an iteration fails or deletes no candidates.
                Iterations committed before the failure stand.
        """
        result = BatchRunResult(plan=plan.name)
        while await self._run_iteration(plan, result):
            pass

        logger.info(
            "batch_cursor_completed",
            extra={
                "plan": plan.name,
                "iterations": result.iterations,
                "candidates_deleted": result.candidates_deleted,
                "dependents_deleted": result.dependents_deleted,
            },
        )
        return result

    async def _run_iteration(self, plan: CascadePlan, result: BatchRunResult) -> bool:
        """Run one select/delete/commit iteration.

        Returns:
            False when the selection came back empty, True after a commit.
        """
        try:
            async with self._engine.begin() as conn:
                selected = await conn.execute(plan.candidates.limit(self._batch_size))
                ids = list(selected.scalars().all())
                if not ids:
                    return False

                dependents_deleted = 0
                for dependent in plan.dependents:
                    deleted = await conn.execute(dependent.build(ids))
                    dependents_deleted += max(deleted.rowcount, 0)
                if plan.before_delete is not None:
                    dependents_deleted += await plan.before_delete(conn, ids)

                deleted = await conn.execute(plan.delete_candidates(ids))
                if deleted.rowcount == 0:
                    raise TransactionError(
                        f"delete {plan.name}",
                        f"batch of {len(ids)} candidates removed no rows",
                        plan=plan.name,
                    )
        except SQLAlchemyError as exc:
            raise TransactionError(
                f"delete {plan.name}",
                str(exc),
                plan=plan.name,
                iteration=result.iterations + 1,
            ) from exc

        result.iterations += 1
        result.candidates_deleted += max(deleted.rowcount, 0)
        result.dependents_deleted += dependents_deleted
        logger.debug(
            "batch_cursor_iteration_committed",
            extra={"plan": plan.name, "iteration": result.iterations, "batch": len(ids)},
        )
        return True
