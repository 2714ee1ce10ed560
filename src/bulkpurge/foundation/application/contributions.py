"""Contribution types for application wiring.

These dataclasses describe pieces that infrastructure packages hand to the
app factory. They are framework-agnostic (no FastAPI, no SQLAlchemy, etc.)
and live in the foundation layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Recommended lifespan priority constants
LIFESPAN_PRIORITY_OBSERVABILITY = 50
LIFESPAN_PRIORITY_PERSISTENCE = 75
LIFESPAN_PRIORITY_TASKIQ = 150


@dataclass(frozen=True, slots=True)
class LifespanContribution:
    """Describes a lifespan hook to be registered with the application.

    Attributes:
        hook: An async context manager factory ``(app) -> AsyncContextManager[None]``.
        priority: Ordering priority. Lower priorities start first (and shut down last).
    """

    hook: Any  # Callable[[Any], AsyncContextManager[None]]
    priority: int = 500
