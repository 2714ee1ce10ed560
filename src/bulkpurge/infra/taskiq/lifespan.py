"""TaskIQ lifespan hook for broker startup/shutdown.

The API process only publishes jobs, but the broker still has to be
started so ``.kiq()`` can write to the stream.

Priority 150 ensures TaskIQ starts AFTER persistence (75).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from bulkpurge.foundation.application import LIFESPAN_PRIORITY_TASKIQ, LifespanContribution
from bulkpurge.infra.taskiq.broker import get_broker

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _taskiq_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage TaskIQ broker lifecycle.

    Args:
        app: The application instance (unused but required by protocol).
    """
    _broker = get_broker()
    await _broker.startup()
    logger.info("taskiq_lifespan: broker started")

    try:
        yield
    finally:
        await _broker.shutdown()
        logger.info("taskiq_lifespan: broker shut down")


lifespan_contribution = LifespanContribution(
    hook=_taskiq_lifespan,
    priority=LIFESPAN_PRIORITY_TASKIQ,
)
