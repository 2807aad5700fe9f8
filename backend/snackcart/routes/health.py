"""
SnackCart Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and that the uploads directory is
       writable.

    Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import os
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from snackcart import __version__
from snackcart.schemas.snack import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    uploads_status = "writable"
    overall = "healthy"

    try:
        from snackcart.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    from snackcart.services.file_service import file_service
    if not os.access(file_service.uploads_root, os.W_OK):
        uploads_status = "unavailable"
        logger.warning("Health check: uploads directory not writable: %s", file_service.uploads_root)

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uploads=uploads_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
