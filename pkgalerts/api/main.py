"""FastAPI application factory.

Operator surface for the Registry and the change log, plus a manual
trigger for the alert chain. ``pkgalerts.main`` re-exports ``app``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pkgalerts.api.routes.changes import router as changes_router
from pkgalerts.api.routes.health import router as health_router
from pkgalerts.api.routes.packages import router as packages_router
from pkgalerts.api.routes.runs import router as runs_router
from pkgalerts.core.logging import setup_logging
from pkgalerts.core.settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    yield


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(packages_router)
app.include_router(changes_router)
app.include_router(runs_router)
