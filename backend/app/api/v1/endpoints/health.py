# File: backend/app/api/v1/endpoints/health.py

import logging
import time
from typing import Dict, Any
from fastapi import APIRouter, HTTPException, status, Request, Body
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response

from app.core.config import settings
from app.core.metrics import REQUEST_COUNT, REQUEST_DURATION
from app.db.supabase_client import get_supabase_admin_async_client

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()

@router.get(
    "/health",
    summary="Liveness probe"
)
async def liveness_probe():
    """
    Simple liveness probe.

    Returns 200 OK if the application is running.
    This endpoint doesn't check any dependencies.
    """
    return {"status": "ok"}

@router.get(
    "/ready",
    summary="Readiness probe"
)
async def readiness_probe():
    """
    Readiness probe.

    Returns 200 OK if the application and the database are ready.
    """
    try:
        admin_client = await get_supabase_admin_async_client()
        await admin_client.table("projects").select("id").limit(1).execute()
    except Exception as e:
        logger.error(f"Database readiness check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not ready"
        )

    return {"status": "ready"}

@router.post(
    "/debug/echo",
    summary="Echo payload for debugging"
)
async def debug_echo(
    request: Request,
    payload: Dict[str, Any] = Body(...)
):
    """
    Debug endpoint that echoes back the received payload.
    It's only available in debug mode.
    """
    if not settings.DEBUG:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Endpoint not found"
        )

    return {
        "payload": payload,
        "headers": dict(request.headers),
        "client": {
            "host": request.client.host if request.client else None,
            "port": request.client.port if request.client else None
        }
    }

@router.get(
    "/metrics",
    summary="Prometheus metrics"
)
async def metrics():
    """
    Prometheus metrics endpoint.
    """
    return Response(
        generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )

# Middleware to track metrics
async def metrics_middleware(request: Request, call_next):
    """
    Middleware to track request metrics.
    """
    start_time = time.time()

    response = await call_next(request)

    method = request.method
    # Pakai template route agar label tidak meledak karena id di path
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    status_code = str(response.status_code)

    REQUEST_COUNT.labels(
        method=method,
        endpoint=endpoint,
        status=status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=method,
        endpoint=endpoint
    ).observe(time.time() - start_time)

    return response
