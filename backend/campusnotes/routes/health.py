"""
CampusNotes Backend: Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and HEAD on the bucket.
Who:   Docker health checks, load balancers, uptime monitors.

Status levels:
    - healthy:   database and object store reachable
    - degraded:  database up, object store down (browse works, downloads fail)
    - unhealthy: database down
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from campusnotes import __version__
from campusnotes.database import engine
from campusnotes.schemas.common import HealthResponse
from campusnotes.services.object_store import object_store

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
    store_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Object Store ────────────────────────────────────────────────
    if not await object_store.health_check():
        store_status = "unavailable"
        if overall == "healthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        object_store=store_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
