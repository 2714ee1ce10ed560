"""FastAPI application factory.

Provides :func:`create_app` which wires routers, middleware, error
handlers and lifespan hooks into one application. The infrastructure
lifespans (logging, persistence, TaskIQ broker) are included by default;
domain routers are passed in by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from bulkpurge.foundation.application import LifespanContribution
from bulkpurge.infra.fastapi._health import router as health_router
from bulkpurge.infra.fastapi.error_handlers import register_exception_handlers
from bulkpurge.infra.fastapi.lifespan import compose_lifespan
from bulkpurge.infra.fastapi.middleware.request_id import RequestIdMiddleware
from bulkpurge.infra.fastapi.settings import AppSettings
from bulkpurge.infra.observability import lifespan_contribution as observability_lifespan
from bulkpurge.infra.persistence.lifespan import lifespan_contribution as persistence_lifespan
from bulkpurge.infra.taskiq.lifespan import lifespan_contribution as taskiq_lifespan

if TYPE_CHECKING:
    from fastapi import APIRouter

logger = logging.getLogger(__name__)

DEFAULT_LIFESPAN_HOOKS: tuple[LifespanContribution, ...] = (
    observability_lifespan,
    persistence_lifespan,
    taskiq_lifespan,
)


def create_app(
    settings: AppSettings | None = None,
    *,
    extra_routers: list[APIRouter] | None = None,
    extra_lifespan_hooks: list[LifespanContribution] | None = None,
    include_default_lifespan: bool = True,
) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        extra_routers: Routers to include beyond the health router.
        extra_lifespan_hooks: Lifespan hooks beyond the default ones.
        include_default_lifespan: Include the logging, persistence and
            TaskIQ lifespan hooks. Tests usually turn this off.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or AppSettings()

    lifespan_hooks: list[LifespanContribution] = list(extra_lifespan_hooks or [])
    if include_default_lifespan:
        lifespan_hooks.extend(DEFAULT_LIFESPAN_HOOKS)

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=compose_lifespan(lifespan_hooks),
    )

    # Starlette runs the last added middleware first: request ids wrap CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=settings.cors.expose_headers,
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    routers: list[APIRouter] = [health_router, *(extra_routers or [])]
    for router in routers:
        app.include_router(router)
        logger.info("Included router: %r", router.prefix or "/")

    return app
