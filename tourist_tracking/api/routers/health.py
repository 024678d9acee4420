# tourist_tracking/api/routers/health.py

from fastapi import APIRouter, Request

from tourist_tracking.config.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness plus the partition layout this process writes with."""
    settings = get_settings()
    return {
        "status": "ok",
        "correlation_id": request.state.correlation_id,
        "environment": settings.environment,
        "version": settings.version,
        "storage_backend": settings.storage_backend,
        "time_granularity": settings.time_granularity,
        "fixed_tier": settings.fixed_tier,
    }
