"""
User Directory API: Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs a lightweight `SELECT 1` against the user store.
Who:   Called by container health checks, load balancers, and monitoring.

Status levels:
    - healthy:   store reachable (HTTP 200)
    - unhealthy: store unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from userapi import __version__
from userapi.database import Database, get_database
from userapi.schemas.user import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module load time, used for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(database: Database = Depends(get_database)) -> JSONResponse:
    """Probe the store and report aggregate status and uptime."""
    connected = await database.ping()
    if not connected:
        logger.warning("Health check: database unreachable")

    report = HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(status_code=200 if connected else 503, content=report.model_dump())
