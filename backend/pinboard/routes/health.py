"""
Pinboard Backend: Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Probes the database with SELECT 1 and reports the geocoder's circuit
       breaker state (or a cached reachability check when closed).

Status levels:
    healthy:   Database and geocoder reachable
    degraded:  Geocoder unavailable or circuit open; reads still work
    unhealthy: Database unreachable
"""

import logging
import time

from fastapi import APIRouter, Depends

from pinboard import __version__
from pinboard.database import check_connection
from pinboard.schemas.common import HealthResponse
from pinboard.services.geocoding_base import GeocodingService
from pinboard.services.geocoding_service import CircuitBreaker, get_geocoding_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    geocoder: GeocodingService = Depends(get_geocoding_service),
) -> HealthResponse:
    db_status = "connected"
    geocoding_status = "available"
    overall = "healthy"

    if not await check_connection():
        db_status = "disconnected"
        overall = "unhealthy"

    breaker = getattr(geocoder, "circuit_breaker", None)
    if breaker is not None and breaker.state == CircuitBreaker.OPEN:
        geocoding_status = "circuit_open"
    elif not await geocoder.health_check():
        geocoding_status = "unavailable"

    if geocoding_status != "available" and overall == "healthy":
        overall = "degraded"
        logger.warning("Health check: geocoder %s", geocoding_status)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoding=geocoding_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
