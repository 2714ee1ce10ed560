"""Bulkpurge Infra Persistence: async engine and Redis client factories."""

from bulkpurge.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    dispose_engine,
    get_database_manager,
    get_engine,
)
from bulkpurge.infra.persistence.lifespan import lifespan_contribution
from bulkpurge.infra.persistence.redis_client import RedisFactory, get_redis_factory
from bulkpurge.infra.persistence.redis_settings import RedisSettings

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "RedisFactory",
    "RedisSettings",
    "dispose_engine",
    "get_database_manager",
    "get_engine",
    "get_redis_factory",
    "lifespan_contribution",
]
