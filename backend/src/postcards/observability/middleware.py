"""FastAPI middleware for observability.

Provides request ID generation and logging for all HTTP requests, and
Cache-Control marking for the admin surface.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .request_id import accept_request_id, set_request_id

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to generate and inject request IDs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with request ID.

        Returns:
            Response: HTTP response with X-Request-ID header
        """
        request_id = accept_request_id(request.headers.get("X-Request-ID"))
        set_request_id(request_id)

        start_time = time.time()
        logger.info(
            f"{request.method} {request.url.path}",
            extra={"method": request.method, "path": request.url.path},
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {type(e).__name__}",
                extra={"duration_ms": round(duration_ms, 2)},
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Request completed: {response.status_code}",
            extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 2)},
        )

        response.headers["X-Request-ID"] = request_id
        return response


class NoStoreMiddleware(BaseHTTPMiddleware):
    """Mark every response under a path prefix as uncacheable.

    Runs outside the routers so error responses (401, 404, ...) are covered too.
    """

    def __init__(self, app, path_prefix: str):
        super().__init__(app)
        self.path_prefix = path_prefix.rstrip("/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        path = request.url.path
        if path == self.path_prefix or path.startswith(self.path_prefix + "/"):
            response.headers["Cache-Control"] = "no-store"
        return response
