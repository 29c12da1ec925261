"""ASGI entrypoint: ``uvicorn school_inventory.main:app``."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from . import __version__, models  # noqa: F401  (registers every table)
from .core.config import settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.scheduler import start_scheduler, stop_scheduler
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware
from .routers import (
    api_assistant,
    api_auth,
    api_directory,
    api_equipment,
    api_history,
    api_movements,
    api_notifications,
    api_registry,
    api_reports,
)

logger = logging.getLogger(__name__)

ROUTERS = (
    api_auth,
    api_equipment,
    api_movements,
    api_registry,
    api_history,
    api_directory,
    api_notifications,
    api_reports,
    api_assistant,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    Base.metadata.create_all(bind=engine)
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    logger.info("app.started", extra={"extra_data": {"scheduler": settings.SCHEDULER_ENABLED}})
    try:
        yield
    finally:
        stop_scheduler()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME, version=__version__, lifespan=lifespan)

    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    for module in ROUTERS:
        app.include_router(module.router)

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, bool]:
        return {"ok": True}

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()
