"""Bulkpurge Infra FastAPI: error handlers, middleware, app factory."""

from bulkpurge.infra.fastapi.app_factory import create_app
from bulkpurge.infra.fastapi.error_handlers import (
    ProblemDetail,
    register_exception_handlers,
)
from bulkpurge.infra.fastapi.middleware.request_id import (
    RequestIdMiddleware,
    get_request_id,
)
from bulkpurge.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "create_app",
    "get_request_id",
    "register_exception_handlers",
]
