"""
Client Records Backend — FastAPI Application Factory
======================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers.
Who:   uvicorn (uvicorn clientrecords.main:app) and the test suite.

Exception Handlers:
    ┌───────────────────────────────────────────────────────────┐
    │ ValidationError→400 │ NotFound→404 (client routes: 400)   │
    │ Conflict→406        │ Authentication→401 │ Internal→500   │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration check → uploads directory
    Shutdown: dispose database engine
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

from clientrecords import __version__
from clientrecords.config import settings
from clientrecords.database import dispose_engine
from clientrecords.exceptions import (
    AuthenticationError,
    ClientRecordsError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from clientrecords.middleware.logging import RequestLoggingMiddleware
from clientrecords.middleware.request_id import RequestIDMiddleware, request_id_var
from clientrecords.routes import clients, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-06-10T14:03:11 [INFO] clientrecords.services.client_service: ...
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
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Client Records Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving /health so the misconfiguration is visible
        logger.error("Configuration error: %s", str(e))

    uploads = Path(settings.uploads_dir)
    uploads.mkdir(parents=True, exist_ok=True)
    logger.info("Uploads directory: %s", uploads.resolve())
    logger.info("Serving organization: %s", settings.org_id or "<unset>")
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Client Records Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(exc: ClientRecordsError, message: str, include_details: bool = False) -> dict:
    body = {
        "error": exc.error_code,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if include_details:
        body["details"] = exc.context
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

    The status code comes from the exception class (exc.status_code), so
    ClientNotFoundError answers 400 through the NotFoundError handler.
    Internal errors never expose their context; it is logged instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message, include_details=True),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.info("[%s] Conflict: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.warning(
            "[%s] Rejected %s %s: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            exc.context.get("reason", exc.message),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message),
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


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Client Records API",
        description=(
            "Client profiles for an events organization: records, search, "
            "event registration overview and profile photos."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(clients.router)
    app.include_router(clients.files_router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
