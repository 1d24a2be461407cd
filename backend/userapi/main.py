"""
User Directory API: FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() builds the process-wide Database and
       UserService from Settings, stores them on app.state, and wires
       middleware, exception handlers and routes around them.
Who:   Called by uvicorn (`userapi.main:app`), `python -m userapi`, and tests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────────┐ ┌──────────────┐  │
    │  │ Req ID   │→│  Logging        │→│  CORS        │  │
    │  └──────────┘ └─────────────────┘ └──────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌───────────────────────────────┐ ┌─────────────┐  │
    │  │ /users  /user  /user/{id}     │ │ GET /health │  │
    │  └───────────────────────────────┘ └─────────────┘  │
    │                                                     │
    │  Exception Handlers (all rendered in the envelope): │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ NotFound→404 │ Store→500    │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, create the users table if missing
    Shutdown: dispose the database engine (close all pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userapi import __version__
from userapi.config import Settings, settings as default_settings
from userapi.database import Database
from userapi.exceptions import UserAPIError, ValidationError
from userapi.middleware.logging import RequestLoggingMiddleware
from userapi.middleware.request_id import RequestIDMiddleware, request_id_var
from userapi.routes import health, users
from userapi.schemas.user import envelope
from userapi.services.user_service import UserService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    When:   Called once during app startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,  # Override any existing logging config
    )

    # Third-party libraries that log every operation at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    Code before `yield` runs on startup, code after it on shutdown.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    app_settings: Settings = app.state.settings
    database: Database = app.state.database

    setup_logging(app_settings.log_level)
    logger.info("User Directory API starting up...")

    await database.create_tables()

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("User Directory API shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def describe_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """
    Flatten FastAPI/Pydantic validation errors into one line.

    Example:
        [{"loc": ("body", "address"), "msg": "Field required"}]
        → "address: Field required"
    """
    parts: List[str] = []
    for error in errors:
        loc = [str(p) for p in error.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request body"


def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        RequestValidationError  → ValidationError → 400 (body missing, malformed or incomplete)
        UserAPIError subclasses → their own status_code (400 / 404 / 500)
        HTTPException           → its status (unknown route 404, 405, ...)

    Any other exception is rendered as a 500 by RequestIDMiddleware, so the
    response still carries the X-Request-ID header.

    Every response uses the envelope with the error text in data.data.
    """

    @app.exception_handler(UserAPIError)
    async def handle_user_api_error(request: Request, exc: UserAPIError):
        """Application errors carry their own status code."""
        rid = _request_id(request)
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(exc.status_code, exc.message),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Body failed the UserRequest schema; reported as a client error."""
        errors = exc.errors()
        error = ValidationError(
            message=describe_validation_errors(errors),
            context={"error_count": len(errors)},
        )
        return await handle_user_api_error(request, error)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Framework-level errors (no such route, method not allowed)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to build the app from; defaults to the
                      environment-loaded `userapi.config.settings`.

    Returns:
        Configured FastAPI instance. Its `state` holds `settings`,
        `database` and `user_service`, shared by every request.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="User Directory API",
        description="Create, read, update and delete user records.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Process-wide state ────────────────────────────────────────────────
    app.state.settings = app_settings
    app.state.database = Database(app_settings)
    app.state.user_service = UserService(operation_timeout=app_settings.db_operation_timeout)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(health.router)

    return app


# uvicorn expects `userapi.main:app` to be importable
app = create_app()
