"""
Tweet Archive - Request Correlation Middleware

Each request is served inside ``LogContext(request_id=...)``: the caller's
X-Request-ID when it sends one, otherwise a fresh short id. Every record
logged while the request runs (upload, ingest, store, search) carries the
id, the error envelope reports it, and the response echoes it back.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import LogContext, get_current_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id() -> str:
    """Correlation id of the request being served, or "" outside one."""
    return get_current_context().get("request_id", "")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line per response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        route = f"{request.method} {request.url.path}"
        started = time.perf_counter()

        with LogContext(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("%s raised", route, extra={"method": request.method, "path": request.url.path})
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.log(
                _level_for(response.status_code),
                "%s -> %d (%.1fms)",
                route,
                response.status_code,
                elapsed_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed_ms, 2),
                },
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
