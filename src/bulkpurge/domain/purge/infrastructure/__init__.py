"""Bulk purge infrastructure: store schema, deletion loop, stages and adapters."""

from bulkpurge.domain.purge.infrastructure.batch_deleter import (
    BatchCursorDeleter,
    BatchRunResult,
    CascadePlan,
    DependentDelete,
)
from bulkpurge.domain.purge.infrastructure.gate import ExclusivityGate
from bulkpurge.domain.purge.infrastructure.integrity import find_orphans
from bulkpurge.domain.purge.infrastructure.status_publishers import (
    CompositeStatusPublisher,
    LoggingStatusPublisher,
    RedisStatusPublisher,
    StatusPublisher,
    StatusUpdate,
)

__all__ = [
    "BatchCursorDeleter",
    "BatchRunResult",
    "CascadePlan",
    "CompositeStatusPublisher",
    "DependentDelete",
    "ExclusivityGate",
    "LoggingStatusPublisher",
    "RedisStatusPublisher",
    "StatusPublisher",
    "StatusUpdate",
    "find_orphans",
]
