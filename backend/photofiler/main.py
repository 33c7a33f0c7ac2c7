"""
PhotoFiler Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn photofiler.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐             │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│ CORS │             │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘             │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────────┐ ┌──────────────┐ ┌───────────────────┐ │
    │  │ /api/photos  │ │ /api/root-   │ │ /api/gallery      │ │
    │  │ /api/backends│ │   folder     │ │ /api/exports      │ │
    │  └──────────────┘ └──────────────┘ └───────────────────┘ │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ InvalidInput→400 │ Denied→403 │ Choice→409 │ …→500 │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Create storage roots
    3. Create database tables
    4. Restore the persisted root folder

    Shutdown:
    1. Dispose database engine
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

from photofiler import __version__
from photofiler.config import settings
from photofiler.database import dispose_engine, init_models
from photofiler.exceptions import (
    AllBackendsExhaustedError,
    BackendSelectionRequiredError,
    BackendUnavailableError,
    DatabaseError,
    DirectoryAccessRevokedError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    PhotoFilerError,
    SaveCancelledError,
    SaveInProgressError,
    StrategyFailureError,
)
from photofiler.middleware.logging import RequestLoggingMiddleware
from photofiler.middleware.request_id import RequestIDMiddleware, request_id_var
from photofiler.routes import gallery, health, photos, root_folder
from photofiler.services.save_orchestrator import get_save_orchestrator

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once, before any other initialization.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
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
    logger.info("PhotoFiler Backend %s starting up (platform=%s)", __version__, settings.platform)

    for role, root in settings.storage_roots().items():
        path = Path(root)
        path.mkdir(parents=True, exist_ok=True)
        logger.info("Storage root %-14s %s", role, path.resolve())

    await init_models()
    root = await get_save_orchestrator().load_root_folder()
    logger.info("Root folder: %s", root.display_name if root else "none selected")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PhotoFiler Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, exc: PhotoFilerError) -> dict:
    details = dict(exc.context)
    if exc.kind is not None:
        details["kind"] = exc.kind.value
    return {
        "error": error,
        "message": exc.message,
        "details": details,
        "request_id": request_id_var.get(""),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps the exception hierarchy to HTTP responses.

    Handler hierarchy:
        InvalidInputError              → 400
        PermissionDeniedError          → 403
        NotFoundError                  → 404
        DirectoryAccessRevokedError    → 409
        SaveInProgressError            → 409
        SaveCancelledError             → 409
        BackendSelectionRequiredError  → 409
        StrategyFailureError           → 500
        AllBackendsExhaustedError      → 500
        DatabaseError                  → 500 (generic message)
        BackendUnavailableError        → 501
        PhotoFilerError (base)         → 500
        Exception (fallback)           → 500

    Responses never carry stack traces; those are logged server-side.
    """

    @app.exception_handler(InvalidInputError)
    async def handle_invalid_input(request: Request, exc: InvalidInputError):
        logger.warning("[%s] Invalid input: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=_error_body("invalid_input", exc))

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Permission denied: %s", request_id_var.get(""), exc.permission)
        return JSONResponse(status_code=403, content=_error_body("permission_denied", exc))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc))

    @app.exception_handler(DirectoryAccessRevokedError)
    async def handle_access_revoked(request: Request, exc: DirectoryAccessRevokedError):
        logger.warning("[%s] Directory access revoked: %s", request_id_var.get(""), exc.display_name)
        return JSONResponse(status_code=409, content=_error_body("directory_access_revoked", exc))

    @app.exception_handler(SaveInProgressError)
    async def handle_save_in_progress(request: Request, exc: SaveInProgressError):
        return JSONResponse(status_code=409, content=_error_body("save_in_progress", exc))

    @app.exception_handler(SaveCancelledError)
    async def handle_save_cancelled(request: Request, exc: SaveCancelledError):
        return JSONResponse(status_code=409, content=_error_body("save_cancelled", exc))

    @app.exception_handler(BackendSelectionRequiredError)
    async def handle_selection_required(request: Request, exc: BackendSelectionRequiredError):
        return JSONResponse(status_code=409, content=_error_body("backend_selection_required", exc))

    @app.exception_handler(StrategyFailureError)
    async def handle_strategy_failure(request: Request, exc: StrategyFailureError):
        logger.error("[%s] Save failed: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        body = _error_body("strategy_failure", exc)
        # Raw error text stays in the log
        body["details"] = {"kind": exc.kind.value, "failed_backend": exc.backend.value}
        return JSONResponse(status_code=500, content=body)

    @app.exception_handler(AllBackendsExhaustedError)
    async def handle_exhausted(request: Request, exc: AllBackendsExhaustedError):
        logger.error("[%s] All backends failed: %s", request_id_var.get(""), exc.context.get("attempted"))
        body = _error_body("all_backends_exhausted", exc)
        if exc.failed_backend is not None:
            body["details"]["failed_backend"] = exc.failed_backend.value
        return JSONResponse(status_code=500, content=body)

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

    @app.exception_handler(BackendUnavailableError)
    async def handle_backend_unavailable(request: Request, exc: BackendUnavailableError):
        return JSONResponse(status_code=501, content=_error_body("backend_unavailable", exc))

    @app.exception_handler(PhotoFilerError)
    async def handle_photofiler_error(request: Request, exc: PhotoFilerError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc))

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
    app = FastAPI(
        title="PhotoFiler API",
        description=(
            "Files labeled photos into a user-selected root folder, the device "
            "gallery, app storage or a custom location, falling back through "
            "the remaining destinations when a write fails."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
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
    app.include_router(photos.router)
    app.include_router(root_folder.router)
    app.include_router(gallery.router)
    app.include_router(health.router)

    return app


app = create_app()
