"""Ordered purge pipeline.

The order of :attr:`PurgePipeline.cleanup_stages` is the contract: each
stage may only evaluate "empty" or "dangling" once the stages before it
have committed. In particular board members must go before empty boards,
and playbook members before empty runs and playbooks, otherwise a board
or playbook still listing a deleted member would not look empty.

Stages run strictly one after the other. The first failure stops the
pipeline; later stages do not run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bulkpurge.domain.purge.infrastructure.stages import (
    DanglingBoardMembersStage,
    DanglingPlaybookDataStage,
    DanglingPlaybookMembersStage,
    DanglingUserDataStage,
    EmptyBoardsStage,
    EmptyChannelsStage,
    EmptyPlaybooksStage,
    EmptyRunsStage,
    UserDeletionStage,
)
from bulkpurge.domain.purge.progress import ProgressEvent
from bulkpurge.foundation.domain.exceptions import StageAbortError
from bulkpurge.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine

    from bulkpurge.domain.purge.infrastructure.batch_deleter import BatchCursorDeleter
    from bulkpurge.domain.purge.infrastructure.stages import Stage
    from bulkpurge.domain.purge.infrastructure.stages.channels import ChannelService
    from bulkpurge.domain.purge.infrastructure.stages.users import AccountService
    from bulkpurge.foundation.domain.user_value_objects import TargetUser
    from bulkpurge.infra.mattermost.file_store import LocalFileStore

logger = get_logger(__name__)


class PurgePipeline:
    """User deletion followed by the cleanup stages, in dependency order.

    Args:
        user_stage: Stage 1, driven by the target set.
        cleanup_stages: Stages 2 to 9, in the order they must run.
    """

    def __init__(self, user_stage: UserDeletionStage, cleanup_stages: Sequence[Stage]) -> None:
        self.user_stage = user_stage
        self.cleanup_stages = list(cleanup_stages)

    @classmethod
    def build(
        cls,
        engine: AsyncEngine,
        deleter: BatchCursorDeleter,
        accounts: AccountService,
        channels: ChannelService,
        files: LocalFileStore,
    ) -> PurgePipeline:
        """Assemble the standard nine-stage pipeline."""
        return cls(
            UserDeletionStage(accounts, deleter),
            [
                DanglingUserDataStage(engine),
                DanglingBoardMembersStage(engine),
                EmptyBoardsStage(deleter, files),
                DanglingPlaybookMembersStage(engine),
                EmptyRunsStage(deleter),
                EmptyPlaybooksStage(deleter),
                DanglingPlaybookDataStage(engine),
                EmptyChannelsStage(engine, channels, page_size=deleter.batch_size),
            ],
        )

    @property
    def stage_names(self) -> list[str]:
        return [self.user_stage.name, *(stage.name for stage in self.cleanup_stages)]

    async def run(self, users: Sequence[TargetUser]) -> AsyncIterator[ProgressEvent]:
        """Run every stage, yielding progress as it goes.

        Yields one event per deleted user, then one per completed cleanup
        stage (with the completed count unchanged).

        Raises:
            StageAbortError: A stage failed. Carries the stage name and the
                number of users deleted before the failure; the original
                error is chained as ``__cause__``.
        """
        total = len(users)
        completed = 0

        stage_name = self.user_stage.name
        try:
            async for tick in self.user_stage.run(users):
                completed = tick.completed
                yield ProgressEvent(completed, total, stage_name)

            for stage in self.cleanup_stages:
                stage_name = stage.name
                logger.info("stage_started", stage=stage_name)
                await stage.run()
                yield ProgressEvent(completed, total, stage_name)
        except StageAbortError:
            raise
        except Exception as exc:
            logger.error("stage_failed", stage=stage_name, error=str(exc), completed=completed)
            raise StageAbortError(stage_name, str(exc), completed, total) from exc
