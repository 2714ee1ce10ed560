"""Bulkpurge Infra TaskIQ: background job broker factory."""

from bulkpurge.infra.taskiq.broker import broker, get_broker, get_result_backend
from bulkpurge.infra.taskiq.lifespan import lifespan_contribution
from bulkpurge.infra.taskiq.settings import TaskIQSettings, get_taskiq_settings

__all__ = [
    "TaskIQSettings",
    "broker",
    "get_broker",
    "get_result_backend",
    "get_taskiq_settings",
    "lifespan_contribution",
]
