"""
SnackCart Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn snackcart.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │ /api/snacks  │ │ /uploads │ │ GET /health     │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ NotFound→404 │ Store→500    │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, uploads directory
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

from snackcart import __version__
from snackcart.config import settings
from snackcart.database import dispose_engine
from snackcart.exceptions import (
    FileStorageError,
    NotFoundError,
    RateLimitExceededError,
    SnackCartError,
    StoreError,
    ValidationError,
)
from snackcart.middleware.logging import RequestLoggingMiddleware
from snackcart.middleware.rate_limit import RateLimitMiddleware
from snackcart.middleware.request_id import RequestIDMiddleware, request_id_var
from snackcart.routes import health, snacks, uploads

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Chatty at INFO; our access logger covers requests
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("SnackCart Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: a development setup is still usable
        logger.warning("Configuration warning: %s", str(e))

    uploads_root = Path(settings.uploads_root)
    uploads_root.mkdir(parents=True, exist_ok=True)
    logger.info("Uploads directory: %s (served at %s)", uploads_root.resolve(), settings.uploads_url_path)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SnackCart Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError         → 400 Bad Request (message shown to the user)
        NotFoundError           → 404 Not Found
        RateLimitExceededError  → 429 Too Many Requests
        StoreError              → 500 (generic message, details logged)
        FileStorageError        → 500
        SnackCartError (base)   → 500
        Exception (fallback)    → 500

    Responses never carry stack traces, SQL or file system paths.
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
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        rid = request_id_var.get("")
        logger.error("[%s] Store error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
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

    @app.exception_handler(SnackCartError)
    async def handle_app_error(request: Request, exc: SnackCartError):
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
                "message": "An unexpected error occurred. Please try again.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="SnackCart API",
        description=(
            "Inventory API for a theatre snack counter: list, add, edit and remove "
            "snacks grouped into Vegetarian, Non Vegetarian and Juice."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(snacks.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {"message": "Snack API Running...", "version": __version__}

    return app


app = create_app()
