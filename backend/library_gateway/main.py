"""
Library Gateway — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance;
       run() starts uvicorn on settings.host/settings.port.
Who:   uvicorn (`uvicorn library_gateway.main:app`), the `library-gateway`
       console script, `python -m library_gateway`, and the tests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────┐ ┌────────┐ ┌─────────┐ ┌───────────┐      │
    │  │ CORS │→│ Req ID │→│ Logging │→│ Body Size │      │
    │  └──────┘ └────────┘ └─────────┘ └───────────┘      │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────┐ ┌─────────────┐  │
    │  │ /api/upload/*│ │ /api/books/* │ │ /api/health │  │
    │  │ /delete-file │ │              │ │ /test-*     │  │
    │  └──────────────┘ └──────────────┘ └─────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌────────────────────────────────────────────────┐ │
    │  │ Validation→400 │ TooLarge→413 │ Storage→500    │ │
    │  │ LLM→503        │ other→500                     │ │
    │  └────────────────────────────────────────────────┘ │
    └─────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from library_gateway import __version__
from library_gateway.config import settings
from library_gateway.exceptions import GatewayError
from library_gateway.middleware.body_limit import BodySizeLimitMiddleware
from library_gateway.middleware.logging import RequestLoggingMiddleware
from library_gateway.middleware.request_id import RequestIDMiddleware, request_id_var
from library_gateway.routes import books, files, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] library_gateway.routes.files: Upload successful: ...
    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # boto logs every request/credential lookup at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
        1. Setup logging
        2. Validate critical configuration (logged, not fatal, so the
           diagnostic routes can still explain what is wrong)
        3. Log where the server listens and what it allows
    Shutdown:
        Nothing to release: boto3 and the Gemini SDK hold no connections
        that need closing.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Library Gateway %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Backend server running on port %d", settings.port)
    logger.info("CORS enabled for: %s", ", ".join(settings.cors_origins_list))
    logger.info("AI Summary route: POST /api/books/generate-summary")
    logger.info("=" * 60)

    yield

    logger.info("Library Gateway shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _error_body(message: str, details, rid: str) -> dict:
    body = {"error": message}
    if details:
        body["details"] = details
    body["request_id"] = rid
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        GatewayError and subclasses → exc.status_code
            ValidationError         → 400
            PayloadTooLargeError    → 413
            StorageServiceError     → 500
            LLMServiceError         → 503
        RequestValidationError      → 400 (malformed JSON / form body)
        Exception (fallback)        → 500, generic message

    Security: stack traces and exception context are logged server-side only.
    """

    @app.exception_handler(GatewayError)
    async def handle_gateway_error(request: Request, exc: GatewayError):
        rid = _request_id(request)
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                exc.message,
                exc.details,
                exc.context,
            )
        else:
            logger.warning("[%s] %s", rid, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.details, rid),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = _request_id(request)
        first = exc.errors()[0] if exc.errors() else {}
        logger.warning("[%s] Malformed request: %s", rid, first)
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request body", first.get("msg"), rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("An unexpected error occurred. Please try again.", None, rid),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Library Gateway API",
        description=(
            "Backend for the library portal: uploads book and notice PDFs to S3, "
            "deletes them by URL, and generates book summaries with Google Gemini."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → BodySize → GZip
    # CORS must stay outermost: short-circuit replies (413, 400) need allow-origin too
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(BodySizeLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=settings.cors_methods_list,
        allow_headers=settings.cors_headers_list,
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(files.router)
    app.include_router(books.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app on settings.host:settings.port."""
    uvicorn.run(
        "library_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
