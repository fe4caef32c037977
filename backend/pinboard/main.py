"""
Pinboard Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the module-level `app` is what uvicorn serves.

Application Layout:
    Middleware:  RateLimit → RequestID → Logging → GZip → CORS
    Routes:      /api/positions, /api/users, /uploads/images, /health
    Errors:      Every PinboardError subclass maps to one status code and
                 the same JSON body: {error, message, details?, request_id}

Lifecycle:
    Startup:  logging, configuration check, database check, storage dir
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pinboard import __version__
from pinboard.config import settings
from pinboard.database import check_connection, dispose_engine
from pinboard.exceptions import (
    AuthenticationError,
    DatabaseError,
    FileStorageError,
    GeocodingServiceError,
    InvalidCredentialsError,
    NotAuthorizedError,
    NotFoundError,
    PinboardError,
    ValidationError,
)
from pinboard.middleware.logging import RequestLoggingMiddleware
from pinboard.middleware.rate_limit import RateLimitMiddleware
from pinboard.middleware.request_id import RequestIDMiddleware, request_id_var
from pinboard.routes import health, positions, uploads, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole application.

    Format: 2024-01-15T12:00:00 [INFO] pinboard.services.position_service: ...
    Output goes to stdout so container runtimes capture it.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Pinboard backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: reads and /health work without these keys
        logger.error("Configuration error: %s", str(e))

    if await check_connection():
        logger.info("Connected to database")
    else:
        logger.error("Database unreachable at startup; requests will fail until it is back")

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.host, settings.port)

    yield

    logger.info("Pinboard backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes.

    Handler table:
        ValidationError          → 422 (includes AddressNotFoundError, UserExistsError)
        RequestValidationError   → 422 (malformed ids or bodies caught by FastAPI)
        AuthenticationError      → 401
        NotAuthorizedError       → 401
        InvalidCredentialsError  → 403
        NotFoundError            → 404
        GeocodingServiceError    → 500 with Retry-After when known
        DatabaseError            → 500
        FileStorageError         → 500
        PinboardError (base)     → 500
        unknown route            → 404 "Could not find this route."
        Exception (fallback)     → 500

    Responses never carry stack traces, SQL or file paths; those are logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        details = {
            key: exc.context[key] for key in ("field", "fields") if key in exc.context
        }
        return JSONResponse(
            status_code=422,
            content=_error_body("validation_error", exc.message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        fields = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())[1:]),
                "message": error.get("msg", ""),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "validation_error",
                "Invalid inputs passed, please check your data.",
                {"fields": fields},
            ),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.info(
            "[%s] Authentication failed: %s",
            request_id_var.get(""),
            exc.context.get("reason", "unknown"),
        )
        return JSONResponse(
            status_code=401,
            content=_error_body("authentication_failed", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotAuthorizedError)
    async def handle_not_authorized(request: Request, exc: NotAuthorizedError):
        logger.warning("[%s] Not authorized: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=401,
            content=_error_body("not_authorized", exc.message),
        )

    @app.exception_handler(InvalidCredentialsError)
    async def handle_invalid_credentials(request: Request, exc: InvalidCredentialsError):
        return JSONResponse(
            status_code=403,
            content=_error_body("invalid_credentials", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(GeocodingServiceError)
    async def handle_geocoding_error(request: Request, exc: GeocodingServiceError):
        logger.error("[%s] Geocoding error: %s", request_id_var.get(""), exc.message)
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        details = {"retry_after": exc.retry_after} if exc.retry_after else None
        return JSONResponse(
            status_code=500,
            content=_error_body("geocoding_error", exc.message, details),
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(PinboardError)
    async def handle_pinboard_error(request: Request, exc: PinboardError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = "Could not find this route."
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("not_found" if exc.status_code == 404 else "http_error", message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", "An unknown error occurred!"),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests build a fresh app per test and swap services through
    `app.dependency_overrides`.
    """
    app = FastAPI(
        title="Pinboard API",
        description=(
            "Share places on a map. Browse positions and users publicly; "
            "sign up and log in to create, edit and delete your own positions."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware runs in reverse order of registration:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(positions.router)
    app.include_router(users.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on settings.host:port."""
    uvicorn.run(
        "pinboard.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
