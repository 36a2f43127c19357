"""
Client Records Backend — Health Check Route
=============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and that the uploads directory is
       writable, and returns the aggregate status.

Status levels:
    - healthy:   database reachable and uploads writable (HTTP 200)
    - unhealthy: either dependency down (HTTP 503)
"""

import logging
import os
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from clientrecords import __version__
from clientrecords.database import engine
from clientrecords.schemas.client import HealthResponse
from clientrecords.services.file_service import get_file_service

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

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Uploads Directory ───────────────────────────────────────────
    try:
        uploads_dir = get_file_service().uploads_dir
        if not os.access(uploads_dir, os.W_OK):
            uploads_status = "unavailable"
            overall = "unhealthy"
    except OSError as e:
        uploads_status = "unavailable"
        overall = "unhealthy"
        logger.warning("Health check: uploads directory unavailable: %s", str(e))

    if overall != "healthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uploads=uploads_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
