"""
FastAPI application entry point for the CityHub backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from cityhub.config import Settings, get_settings
from cityhub.dependencies import build_auth_client, build_data_store, build_storage_client
from cityhub.errors import install_exception_handlers
from cityhub.routes import router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    settings.check_required()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="CityHub Backend (FastAPI)", version="0.1.0")
    app.state.settings = settings
    app.state.data_store = build_data_store(settings)
    app.state.auth_client = build_auth_client(settings)
    app.state.storage_client = build_storage_client(settings)
    logger.info(
        "Backends: store=%s auth=%s storage=%s",
        app.state.data_store.__class__.__name__,
        app.state.auth_client.__class__.__name__,
        app.state.storage_client.__class__.__name__,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    install_exception_handlers(app)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    def liveness() -> str:
        return "Backend running..."

    app.include_router(router, prefix=settings.api_prefix)
    return app
