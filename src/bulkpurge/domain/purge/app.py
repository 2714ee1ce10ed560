"""ASGI entry point of the purge service.

    uvicorn --factory bulkpurge.domain.purge.app:create_purge_app
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bulkpurge.domain.purge.router import router
from bulkpurge.infra.fastapi.app_factory import create_app

if TYPE_CHECKING:
    from fastapi import FastAPI

    from bulkpurge.infra.fastapi.settings import AppSettings


def create_purge_app(settings: AppSettings | None = None) -> FastAPI:
    return create_app(settings, extra_routers=[router])
