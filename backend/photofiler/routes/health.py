"""
PhotoFiler Backend: Health Check Route
========================================

What:  Health check endpoint for monitoring and container probes.
How:   Checks the database (SELECT 1) and every storage root.
Who:   Called by Docker health checks and monitoring systems.

Status levels:
    healthy:    database connected, every storage root writable
    degraded:   database connected, some storage root missing or read-only
    unhealthy:  database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from photofiler import __version__
from photofiler.config import settings
from photofiler.schemas.storage import HealthResponse
from photofiler.services.platform import storage_status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        from photofiler.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Storage Roots ───────────────────────────────────────────────
    storage = await storage_status(settings.storage_roots())
    if overall == "healthy" and any(s != "writable" for s in storage.values()):
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
