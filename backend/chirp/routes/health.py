"""
Chirp Backend — Health Check Route
====================================

What:  GET /health for container health checks and load balancers.
How:   SELECT 1 against the database plus the media host's circuit state
       (no network call to the media host).

Status levels:
    healthy   → database up, media host available (200)
    degraded  → database up, media host circuit open (200)
    unhealthy → database unreachable (503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from chirp import __version__
from chirp.database import engine
from chirp.schemas.common import HealthResponse
from chirp.services.media import media_host

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check():
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    media_status = media_host.health_status()
    if media_status != "available" and overall == "healthy":
        overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        media_host=media_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
