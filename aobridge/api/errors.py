"""Error handlers for the aobridge REST API.

Every failure leaves the server as a `{success: false, error: ...}` body.
BridgeError subclasses pick their own status code; unexpected exceptions
are logged with a traceback and reported as a generic 500.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from aobridge.errors import BridgeError


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers that map errors onto the API error body."""

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Return 400 with field-level errors."""
        errors = [
            {
                "field": " -> ".join(str(loc) for loc in error.get("loc", []) if loc != "body"),
                "message": error.get("msg", "Invalid value"),
            }
            for error in exc.errors()
        ]
        logger.warning(
            "Validation error on {} {}: {}",
            request.method,
            request.url.path,
            exc.errors(),
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all: log the real error, return a generic 500 message."""
        logger.exception(
            "Unhandled error on {} {}: {}",
            request.method,
            request.url.path,
            exc,
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )
