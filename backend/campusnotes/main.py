"""
CampusNotes Backend: FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers.
Who:   uvicorn (`uvicorn campusnotes.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐        │
    │  │ Req ID   │→│ Logging  │→│ GZip │→│ CORS │        │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘        │
    │                                                     │
    │  Routers:                                           │
    │  /api/notes   /api/admin   /api/meta   /health      │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ Auth→401 │ Role→403 │ NotFound→404│
    │  Storage→500    │ anything else→500                 │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, config check, database connection check (retried)
    Shutdown: dispose the engine's connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from campusnotes import __version__
from campusnotes.config import settings
from campusnotes.database import dispose_engine, verify_connection
from campusnotes.exceptions import (
    AuthenticationError,
    CampusNotesError,
    NotFoundError,
    RoleDeniedError,
    StorageError,
    ValidationError,
)
from campusnotes.middleware.logging import RequestLoggingMiddleware
from campusnotes.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from campusnotes.routes import admin, health, meta, notes

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s

    The request id comes from RequestIDLogFilter, attached to the handler so
    records from third-party loggers get it too.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party libraries log every call at DEBUG/INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "botocore", "boto3", "urllib3", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("CampusNotes Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: /health still reports what is missing
        logger.error("Configuration error: %s", str(e))

    try:
        await verify_connection()
        logger.info("Database connection verified")
    except Exception as e:
        logger.error("Database unreachable after %d attempts: %s", settings.db_connect_attempts, str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("CampusNotes Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # Handlers for bare Exception run outside RequestIDMiddleware, after the
    # ContextVar is reset; request.state still holds the id
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _error(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": _request_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError         → 400 (EmptySelectionError included)
        RequestValidationError  → 400 (malformed body, path or query)
        AuthenticationError     → 401
        RoleDeniedError         → 403
        NotFoundError           → 404
        StorageError            → 500 (DatabaseError, ObjectStoreError)
        CampusNotesError        → 500
        Exception               → 500

    5xx bodies never carry `context`; it is logged server-side only.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error(request, 400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
            for e in exc.errors()
        ]
        logger.warning("Request validation failed: %s", errors)
        return _error(request, 400, "validation_error", "Invalid request", {"errors": errors})

    @app.exception_handler(AuthenticationError)
    async def handle_authentication(request: Request, exc: AuthenticationError):
        response = _error(request, 401, "unauthorized", exc.message)
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.exception_handler(RoleDeniedError)
    async def handle_role_denied(request: Request, exc: RoleDeniedError):
        logger.warning("Access denied: %s | %s", exc.message, exc.context)
        return _error(request, 403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(request, 404, "not_found", exc.message)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        return _error(request, 500, "server_error", exc.message)

    @app.exception_handler(CampusNotesError)
    async def handle_app_error(request: Request, exc: CampusNotesError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return _error(request, 500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="CampusNotes API",
        description=(
            "Course notes sharing backend: faculty upload PDFs into a regulation, "
            "branch and subject taxonomy; students browse and download them."
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
        expose_headers=["X-Request-ID", "Content-Disposition", "Content-Length"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(notes.router)
    app.include_router(admin.router)
    app.include_router(meta.router)
    app.include_router(health.router)

    return app


app = create_app()
