"""
Ecol Backend: FastAPI Application Factory
=========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() returns a configured FastAPI instance; uvicorn serves
       the module-level `app` (uvicorn ecol.main:app --port 3333).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware: RequestID → Logging → RateLimit        │
    │              → GZip → CORS                          │
    │                                                     │
    │  Routes:                                            │
    │    /points  /points/{id}  /items  /uploads  /health │
    │                                                     │
    │  Exception Handlers:                                │
    │    Validation→400  NotFound→400  DB/File→500        │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, upload directory, optional schema bootstrap + seed
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from ecol import __version__
from ecol.config import settings
from ecol.database import async_session_factory, create_schema, dispose_engine
from ecol.exceptions import (
    DatabaseError,
    EcolError,
    FileStorageError,
    NotFoundError,
    ValidationError,
)
from ecol.middleware.logging import RequestLoggingMiddleware
from ecol.middleware.rate_limit import RateLimitMiddleware
from ecol.middleware.request_id import RequestIDMiddleware, request_id_var
from ecol.routes import health, items, points, uploads
from ecol.services.item_service import item_service

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


async def bootstrap_schema() -> None:
    """Create missing tables and seed the item catalog (AUTO_CREATE_SCHEMA)."""
    await create_schema()
    async with async_session_factory() as session:
        inserted = await item_service.seed_default_items(session)
        await session.commit()
    logger.info("Schema bootstrap complete (%d items seeded)", inserted)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Ecol Backend %s starting up...", __version__)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", storage.resolve())

    if settings.auto_create_schema:
        await bootstrap_schema()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Ecol Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to JSON error responses.

        ValidationError   → 400 (details returned: the client can fix them)
        NotFoundError     → 400 (the web client expects 400 for a missing point)
        FileStorageError  → 500
        DatabaseError     → 500 (generic message, details logged only)
        EcolError         → 500
        Exception         → 500 (stack trace logged only)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=400,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(EcolError)
    async def handle_app_error(request: Request, exc: EcolError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers into a new app."""
    app = FastAPI(
        title="Ecol API",
        description=(
            "Collection points for recyclable and disposable residue. "
            "List and filter points by city, state and accepted items, "
            "and register new points with their accepted item categories."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition: RequestID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(points.router)
    app.include_router(items.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


app = create_app()
