"""
PetProject Backend - FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn petproject.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌────────────┐  │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│    CORS    │  │
    │  └──────────┘ └──────────┘ └──────┘ └────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  accounts · social · posts · questions · scan       │
    │  media (local blob store only) · health             │
    │                                                     │
    │  Exception Handlers:                                │
    │  400 invalid │ 401 │ 403 │ 404 │ 409 │ 503 │ 500    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (warn, do not abort)
    3. Log startup complete

    Shutdown:
    1. Close the document store client
    2. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from petproject.config import settings
from petproject.database import close_document_store
from petproject.exceptions import (
    AuthenticationRequiredError,
    BlobStorageError,
    CircuitBreakerOpenError,
    ConflictError,
    InvalidArgumentError,
    LLMServiceError,
    NotFoundError,
    PermissionDeniedError,
    PetProjectError,
    TransientStoreError,
)
from petproject.middleware.logging import RequestLoggingMiddleware
from petproject.middleware.request_id import RequestIDMiddleware, request_id_var
from petproject.routes import accounts, health, media, posts, questions, scan, social

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Level:  settings.log_level

    Called once during app startup, before any other initialization.
    """
    log_format = (
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,  # Override any existing logging config
    )

    # Third-party libraries that log every request or RPC at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("PetProject Backend starting up...")
    logger.info(
        "Document store: %s | Blob store: %s",
        settings.document_store_backend,
        settings.blob_store_backend,
    )

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        # Keep serving: the social graph, feed and Q&A work without Gemini,
        # and /health reports what is missing

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PetProject Backend shutting down...")
    await close_document_store()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    exc: PetProjectError,
    details: bool = True,
    headers: dict = None,
) -> JSONResponse:
    content = {
        "error": error,
        "message": exc.message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = exc.context
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        InvalidArgumentError / ValidationError → 400 Bad Request
        AuthenticationRequiredError            → 401 Unauthorized
        PermissionDeniedError                  → 403 Forbidden
        NotFoundError                          → 404 Not Found
        ConflictError                          → 409 Conflict
        TransientStoreError                    → 503 Service Unavailable (+ Retry-After)
        CircuitBreakerOpenError                → 503 Service Unavailable (+ Retry-After)
        LLMServiceError                        → 503 Service Unavailable
        BlobStorageError                       → 500 Internal Server Error
        PetProjectError (base)                 → 500 Internal Server Error
        Exception (fallback)                   → 500 Internal Server Error

    Server errors never include context in the body; it is logged instead.
    """

    @app.exception_handler(InvalidArgumentError)
    async def handle_invalid_argument(request: Request, exc: InvalidArgumentError):
        """Client sent invalid input; tell them what's wrong."""
        logger.warning("[%s] Invalid argument: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "invalid_argument", exc)

    @app.exception_handler(AuthenticationRequiredError)
    async def handle_authentication_required(request: Request, exc: AuthenticationRequiredError):
        return _error_response(401, "unauthenticated", exc, details=False)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Permission denied: %s", request_id_var.get(""), exc.message)
        return _error_response(403, "permission_denied", exc, details=False)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        """Requested resource doesn't exist."""
        return _error_response(404, "not_found", exc, details=False)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc)

    @app.exception_handler(TransientStoreError)
    async def handle_transient_store(request: Request, exc: TransientStoreError):
        """Document store unreachable; the client may retry."""
        rid = request_id_var.get("")
        logger.error("[%s] Transient store failure: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(
            503,
            "service_unavailable",
            exc,
            details=False,
            headers={"Retry-After": str(exc.retry_after or 1)},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        """Circuit breaker is open; Gemini has been failing too much."""
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc,
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        """Gemini failed after retries or returned unusable output."""
        logger.error("[%s] LLM service error: %s", request_id_var.get(""), exc.message)
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return _error_response(503, "llm_service_error", exc, headers=headers)

    @app.exception_handler(BlobStorageError)
    async def handle_blob_storage_error(request: Request, exc: BlobStorageError):
        """Media storage error; generic body, details logged."""
        rid = request_id_var.get("")
        logger.error("[%s] Blob storage error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "server_error", exc, details=False)

    @app.exception_handler(PetProjectError)
    async def handle_application_error(request: Request, exc: PetProjectError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error(
            "[%s] Unexpected error: %s",
            rid,
            str(exc),
            exc_info=True,
        )
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
    """
    Create and configure the FastAPI application.

    Tests build their own instance and override get_document_store.
    """
    app = FastAPI(
        title="PetProject API",
        description=(
            "Backend for a pet social app: usernames and follows, the Petbook "
            "photo/video feed, the Petora Q&A board with AI answers, and "
            "medical-record scanning with Google Gemini."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition: RequestID runs
    # first, so the logging middleware already sees the request ID.

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
        ],
    )

    # Feed and question pages are the large JSON payloads
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(accounts.router)
    app.include_router(social.router)
    app.include_router(posts.router)
    app.include_router(questions.router)
    app.include_router(scan.router)
    app.include_router(health.router)
    if settings.blob_store_backend == "local":
        app.include_router(media.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
