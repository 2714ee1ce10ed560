"""Bulkpurge Foundation Application: application layer patterns."""

from bulkpurge.foundation.application.contributions import (
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LIFESPAN_PRIORITY_PERSISTENCE,
    LIFESPAN_PRIORITY_TASKIQ,
    LifespanContribution,
)

__all__ = [
    "LIFESPAN_PRIORITY_OBSERVABILITY",
    "LIFESPAN_PRIORITY_PERSISTENCE",
    "LIFESPAN_PRIORITY_TASKIQ",
    "LifespanContribution",
]
