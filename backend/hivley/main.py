"""Hivley messaging API."""
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from hivley.api.routes import auth, conversations, health, messages, presence, realtime
from hivley.config import Settings, settings as default_settings
from hivley.container import build_services
from hivley.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    HivleyError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from hivley.middleware import SecurityHeadersMiddleware
from hivley.spa import mount_spa
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

ERROR_STATUS = (
    (ValidationError, 422),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 502),
)


def status_for(error: HivleyError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


async def hivley_error_handler(request: Request, exc: HivleyError) -> JSONResponse:
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.fields:
        body["fields"] = exc.fields
    return JSONResponse(status_code=status_for(exc), content=body)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        services = build_services(settings)
        await services.database.create_all()
        app.state.services = services
        logger.info("Hivley API started")
        yield
        await services.database.dispose()

    app = FastAPI(title="Hivley API", lifespan=lifespan)

    app.add_exception_handler(HivleyError, hivley_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(SecurityHeadersMiddleware, baas_url=settings.BAAS_URL)

    app.include_router(health.router, tags=["Health"])
    app.include_router(conversations.router, prefix="/api", tags=["Conversations"])
    app.include_router(messages.router, prefix="/api", tags=["Messages"])
    app.include_router(presence.router, prefix="/api", tags=["Presence"])
    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(realtime.router, tags=["Realtime"])

    app.mount(
        settings.PUBLIC_FILES_URL,
        StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
        name="files"
    )

    mount_spa(app, settings.STATIC_DIR)
    return app


app = create_app()
