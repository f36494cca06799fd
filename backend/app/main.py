"""
NoteMark Backend - FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the services, registers middleware, exception
       handlers and routes, and returns the app.
Who:   uvicorn (uvicorn app.main:app) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────┐ ┌──────┐ ┌──────┐         │
    │  │  Req ID  │→│ Logging │→│ GZip │→│ CORS │         │
    │  └──────────┘ └─────────┘ └──────┘ └──────┘         │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌───────────────┐ ┌────────────┐  │
    │  │ /api/notes…  │ │ /api/grammar… │ │ GET /health│  │
    │  └──────────────┘ └───────────────┘ └────────────┘  │
    │                                                     │
    │  app.state.note_service (one per process)           │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, service wiring
    Shutdown: stop LanguageTool, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    DatabaseError,
    GrammarCheckFailedError,
    InternalError,
    NoteMarkError,
    NotFoundError,
    RemoteResponseMalformedError,
    RemoteServiceUnavailableError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import grammar, health, notes
from app.services.note_service import NoteService, build_note_service

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2024-01-15T12:00:00 [INFO] app.services.note_service: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Chatty third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    logging.getLogger("language_tool_python").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("NoteMark Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: notes and local checks work without Gemini
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Markdown encoding=%s, max upload=%d bytes, LanguageTool language=%s",
        settings.markdown_encoding,
        settings.max_file_size,
        settings.languagetool_language,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("NoteMark Backend shutting down...")
    service: NoteService = app.state.note_service
    await service.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _error_response(
    request: Request,
    status_code: int,
    exc: NoteMarkError,
    message: Optional[str] = None,
    include_details: bool = True,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {
        "error": exc.code,
        "message": message or exc.message,
        "request_id": _request_id(request),
    }
    if include_details and exc.context:
        content["details"] = exc.context
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the NoteMarkError taxonomy to HTTP responses.

    Handler hierarchy (most specific class wins):
        ValidationError (incl. InvalidFileType, Decode) → 400
        NotFoundError                                   → 404
        RemoteResponseMalformedError                    → 502
        RemoteServiceUnavailableError (incl. circuit)   → 503 + Retry-After
        GrammarCheckFailed / Database / Internal        → 500, generic message
        NoteMarkError (base)                            → 500
        Exception (fallback)                            → 500

    Server-side failures never expose their context; it is logged instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] %s: %s", _request_id(request), exc.code, exc.message)
        return _error_response(request, 400, exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(request, 404, exc, include_details=False)

    @app.exception_handler(RemoteResponseMalformedError)
    async def handle_malformed_reply(request: Request, exc: RemoteResponseMalformedError):
        logger.error("[%s] Remote reply malformed | Context: %s", _request_id(request), exc.context)
        return _error_response(request, 502, exc, include_details=False)

    @app.exception_handler(RemoteServiceUnavailableError)
    async def handle_remote_unavailable(request: Request, exc: RemoteServiceUnavailableError):
        logger.error("[%s] Remote service unavailable: %s", _request_id(request), exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        details = {"retry_after": exc.retry_after} if exc.retry_after else None
        return JSONResponse(
            status_code=503,
            content={
                "error": exc.code,
                "message": exc.message,
                "details": details,
                "request_id": _request_id(request),
            },
            headers=headers,
        )

    @app.exception_handler(GrammarCheckFailedError)
    async def handle_grammar_failure(request: Request, exc: GrammarCheckFailedError):
        logger.error("[%s] Grammar check failed | Context: %s", _request_id(request), exc.context)
        return _error_response(request, 500, exc, include_details=False)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error | Context: %s", _request_id(request), exc.context)
        return _error_response(request, 500, exc, GENERIC_SERVER_ERROR, include_details=False)

    @app.exception_handler(NoteMarkError)
    async def handle_notemark_error(request: Request, exc: NoteMarkError):
        logger.error("[%s] %s | Context: %s", _request_id(request), exc.code, exc.context)
        return _error_response(request, 500, exc, GENERIC_SERVER_ERROR, include_details=False)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True)
        return _error_response(
            request, 500, InternalError(), GENERIC_SERVER_ERROR, include_details=False
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(note_service: Optional[NoteService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        note_service: Pre-built service (tests pass one with fake engines);
                      defaults to the production wiring.
    """
    app = FastAPI(
        title="NoteMark API",
        description=(
            "Markdown note-taking backend: upload .md notes, get sanitized HTML, "
            "and check grammar with LanguageTool or Google Gemini."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Exactly one Gemini client and one LanguageTool per process
    app.state.note_service = note_service or build_note_service()

    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(notes.router)
    app.include_router(grammar.router)
    app.include_router(health.router)

    return app


app = create_app()
