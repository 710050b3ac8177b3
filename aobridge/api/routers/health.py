"""Health check endpoint.

GET /api/health returns status, version, uptime and a timestamp.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Request

from aobridge import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_probe(request: Request) -> dict:
    """Unauthenticated health check for load balancers and uptime monitors."""
    start_time: float = getattr(request.app.state, "start_time", time.time())
    return {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.time() - start_time, 1),
        "timestamp": datetime.now(UTC).isoformat(),
    }
