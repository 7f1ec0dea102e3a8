"""Postcard Inbox - Main FastAPI Application

This module creates and configures the FastAPI application, including:
- API routers (upload, status, admin)
- Middleware (request ID correlation, CORS)
- Exception handlers mapping domain errors to {"ok": false, "message": ...}
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .domain.entries.errors import EntryError, StoreUnavailable
from .entries.router import router as admin_router
from .infrastructure.storage.storage_config import load_storage_config
from .observability.logging_config import configure_logging
from .observability.middleware import NoStoreMiddleware, RequestIDMiddleware
from .observability.router import router as observability_router
from .status.router import router as status_router
from .uploads.router import router as uploads_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

GENERIC_ERROR_MESSAGE = "Internal server error."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup validates the storage configuration and creates the store root,
    so a misconfigured UPLOAD_DIR fails before the first request.
    """
    settings = get_settings()
    config = load_storage_config(settings)
    config.root.mkdir(parents=True, exist_ok=True)
    logger.info("Postcard inbox starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Entry store root: {config.root}")

    yield

    logger.info("Postcard inbox shutting down...")


def _error_body(message: str) -> dict:
    return {"ok": False, "message": message}


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def entry_error_handler(request: Request, exc: EntryError) -> JSONResponse:
    """Translate domain errors into their HTTP status.

    Store failures keep their detail in the log only.
    """
    if isinstance(exc, StoreUnavailable):
        logger.error(
            f"Entry store failure on {request.method} {request.url.path}",
            exc_info=exc,
        )
        return JSONResponse(status_code=exc.status_code, content=_error_body(GENERIC_ERROR_MESSAGE))

    logger.info(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic request validation errors with the first issue's message."""
    errors = exc.errors()
    message = "Invalid request."
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))

    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"reason": message},
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (401, 404, 405, ...) in the common error shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions.

    Full details are logged but not exposed to the client.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(GENERIC_ERROR_MESSAGE),
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build a configured application instance.

    Args:
        settings: Settings to use; defaults to get_settings()
    """
    settings = settings or get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    is_production = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title="Postcard Inbox API",
        description="Submission, review and export of exchange-student postcards",
        version=__version__,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(NoStoreMiddleware, path_prefix=f"{API_PREFIX}{admin_router.prefix}")

    # Request ID Middleware (must be first for proper correlation)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    app.add_exception_handler(EntryError, entry_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Observability (health, metrics, ready)
    app.include_router(observability_router)

    app.include_router(uploads_router, prefix=API_PREFIX)
    app.include_router(status_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        """Root endpoint - API information."""
        return {
            "name": "Postcard Inbox API",
            "version": __version__,
            "status": "running",
            "docs": None if is_production else "/docs",
        }

    return app


app = create_app()


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "postcards.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=get_settings().ENVIRONMENT == "development",
        log_level=get_settings().LOG_LEVEL.lower(),
    )
