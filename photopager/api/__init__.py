"""photopager REST API — FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from photopager import __version__
from photopager.api.deps import dispose_engine, get_engine, init_session_factory
from photopager.api.errors import register_error_handlers
from photopager.api.middleware.request_id import RequestIDMiddleware
from photopager.api.routers import photos, projects
from photopager.core.database import create_tables
from photopager.core.logging import setup_logging

log = structlog.get_logger("photopager.api")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine (and tables when asked). Shutdown: dispose engine."""
    init_session_factory()
    engine = get_engine()
    if engine is not None and os.environ.get("PHOTOPAGER_INIT_DB", "").lower() in ("1", "true"):
        await create_tables(engine)
        log.info("database.initialised", url=engine.url.render_as_string(hide_password=True))
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="photopager",
        version=__version__,
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    cors_origins = os.environ.get("PHOTOPAGER_CORS_ORIGINS", "http://localhost:3000")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(photos.router, prefix="/api/v1/photos", tags=["photos"])
    app.include_router(projects.router, prefix="/api/v1/projects", tags=["projects"])

    return app
