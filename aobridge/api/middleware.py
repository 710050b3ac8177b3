"""HTTP middleware for the aobridge REST API.

Applied outermost-first during app setup:
  1. RequestSizeLimitMiddleware rejects oversized bodies before parsing
  2. AuditLogMiddleware tags each request with an X-Request-ID and logs it

Rejections use the same `{success: false, error}` body as the route
error handlers.
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

# Polled by load balancers and the web UI; logged at DEBUG only.
_QUIET_PATHS = frozenset({"/api/health", "/api/telegram/status"})


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds the limit.

    Chunked requests without a Content-Length pass through; the JSON
    bodies this API accepts are small, and uvicorn bounds the rest.
    """

    def __init__(self, app, max_bytes: int = 52_428_800) -> None:
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            if not content_length.strip().isdigit():
                return _error(400, "Invalid Content-Length header")
            if int(content_length) > self._max_bytes:
                logger.warning(
                    "Rejected {} {} with {} byte body", request.method, request.url.path, content_length
                )
                return _error(413, f"Request body too large (max {self._max_bytes} bytes)")
        return await call_next(request)


class AuditLogMiddleware(BaseHTTPMiddleware):
    """Log every API request with method, path, status, duration, client IP and request id.

    Server errors log at ERROR, client errors at WARNING. The request id is
    taken from X-Request-ID when the caller sends one and echoed back.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("API {} {} raised request_id={}", request.method, path, request_id)
            raise

        duration_ms = (time.monotonic() - start) * 1000
        status = response.status_code
        if status >= 500:
            level = "ERROR"
        elif status >= 400:
            level = "WARNING"
        elif path in _QUIET_PATHS:
            level = "DEBUG"
        else:
            level = "INFO"
        logger.log(
            level,
            "API {} {} {} {:.0f}ms ip={} request_id={}",
            request.method,
            path,
            status,
            duration_ms,
            _get_client_ip(request),
            request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response


def _get_client_ip(request: Request) -> str:
    """Extract client IP, checking X-Forwarded-For for reverse proxy setups."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
