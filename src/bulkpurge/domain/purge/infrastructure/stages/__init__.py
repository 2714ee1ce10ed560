"""Cleanup stages, one module per entity family."""

from bulkpurge.domain.purge.infrastructure.stages.base import (
    CascadeStage,
    ConditionalDeleteStage,
    Stage,
    children_missing,
    parent_missing,
)
from bulkpurge.domain.purge.infrastructure.stages.boards import (
    DanglingBoardMembersStage,
    EmptyBoardsStage,
)
from bulkpurge.domain.purge.infrastructure.stages.channels import EmptyChannelsStage
from bulkpurge.domain.purge.infrastructure.stages.playbooks import (
    DanglingPlaybookDataStage,
    DanglingPlaybookMembersStage,
    EmptyPlaybooksStage,
    EmptyRunsStage,
)
from bulkpurge.domain.purge.infrastructure.stages.user_data import DanglingUserDataStage
from bulkpurge.domain.purge.infrastructure.stages.users import (
    UserDeleted,
    UserDeletionStage,
    user_post_graph_plan,
)

__all__ = [
    "CascadeStage",
    "ConditionalDeleteStage",
    "DanglingBoardMembersStage",
    "DanglingPlaybookDataStage",
    "DanglingPlaybookMembersStage",
    "DanglingUserDataStage",
    "EmptyBoardsStage",
    "EmptyChannelsStage",
    "EmptyPlaybooksStage",
    "EmptyRunsStage",
    "Stage",
    "UserDeleted",
    "UserDeletionStage",
    "children_missing",
    "parent_missing",
    "user_post_graph_plan",
]
