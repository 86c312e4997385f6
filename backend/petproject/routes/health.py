"""
PetProject Backend - Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the document store, the blob store and the Gemini client.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   All dependencies operational (HTTP 200)
    - degraded:  Blob storage or Gemini down (HTTP 200). The feed, social
                 graph and Q&A still work; uploads or AI features do not.
    - unhealthy: Document store down (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from petproject import __version__
from petproject.database import get_document_store
from petproject.schemas.common import HealthResponse
from petproject.services.blob_service import blob_service
from petproject.services.gemini_service import gemini_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Document store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(store: DocumentStore = Depends(get_document_store)):
    """
    Lightweight probes only:
        Document store: ping() (one point read)
        Blob store:     health_check() (root directory / bucket exists)
        Gemini:         circuit breaker state, then list_models()
    """
    store_status = "connected"
    blob_status = "available"
    gemini_status = "available"
    overall = "healthy"

    # ── Check Document Store ──────────────────────────────────────────────
    try:
        if not await store.ping():
            store_status = "disconnected"
            overall = "unhealthy"
    except Exception as e:
        store_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: document store unreachable: %s", str(e))

    # ── Check Blob Store ──────────────────────────────────────────────────
    try:
        if not await blob_service.health_check():
            blob_status = "unavailable"
            overall = "degraded" if overall != "unhealthy" else overall
    except Exception as e:
        blob_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall
        logger.warning("Health check: blob store unreachable: %s", str(e))

    # ── Check Gemini API ──────────────────────────────────────────────────
    try:
        if gemini_service.circuit_breaker.state == "open":
            gemini_status = "circuit_open"
            overall = "degraded" if overall != "unhealthy" else overall
        elif not await gemini_service.health_check():
            gemini_status = "unavailable"
            overall = "degraded" if overall != "unhealthy" else overall
    except Exception as e:
        gemini_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall
        logger.warning("Health check: Gemini unreachable: %s", str(e))

    report = HealthResponse(
        status=overall,
        version=__version__,
        document_store=store_status,
        blob_store=blob_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=report.model_dump())
    return report
