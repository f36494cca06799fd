"""
NoteMark Backend - Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database and both grammar engines and returns status.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   Database reachable and both engines usable
    - degraded:  Database reachable, an engine is down or unconfigured
    - unhealthy: Database unreachable (HTTP 503)

The LanguageTool engine is started on its first check, so "not_loaded" is a
normal state right after startup and does not degrade the service.
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.note import HealthResponse
from app.services.gemini_service import CircuitBreaker
from app.services.note_service import NoteService, get_note_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "connected"
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return "disconnected"


async def _gemini_status(service: NoteService) -> str:
    gemini = service.remote_engine
    if not gemini.configured:
        return "not_configured"
    if gemini.circuit_breaker.state == CircuitBreaker.OPEN:
        return "circuit_open"
    return "available" if await gemini.health_check() else "unavailable"


async def _languagetool_status(service: NoteService) -> str:
    loaded = await service.local_engine.health_check()
    return "ready" if loaded else "not_loaded"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    service: NoteService = Depends(get_note_service),
) -> HealthResponse:
    """
    Check details:
        Database: SELECT 1
        Gemini: circuit breaker state, then a model metadata lookup
        LanguageTool: whether the local server has been started
    """
    db_status = await _database_status()
    gemini_status = await _gemini_status(service)
    languagetool_status = await _languagetool_status(service)

    if db_status != "connected":
        overall = "unhealthy"
        response.status_code = 503
    elif gemini_status != "available":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        languagetool=languagetool_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
