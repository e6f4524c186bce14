"""
Health check endpoints.

Used for monitoring and load balancer health checks.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import platform

from api.dependencies import get_document_store
from orderdesk import __version__
from orderdesk.domain.exceptions import UpstreamFailure
from orderdesk.settings import get_app_settings
from orderdesk.utils.datetime import utc_now


router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns system health status.
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": "orderdesk",
        "version": __version__,
        "python_version": platform.python_version(),
    }


@router.get("/health/ready")
async def readiness_check(store=Depends(get_document_store)):
    """
    Readiness check endpoint.

    Reads the order counter to prove the document store answers.
    """
    settings = get_app_settings()
    try:
        await store.get(settings.ordering.counter_path)
        store_check = "ok"
    except UpstreamFailure as e:
        store_check = f"error: {e.message}"

    ready = store_check == "ok"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": utc_now().isoformat(),
            "checks": {
                "api": "ok",
                "document_store": store_check,
                "backend": settings.database.backend,
            },
        },
    )
