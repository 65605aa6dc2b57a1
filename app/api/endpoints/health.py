"""
Health Check Endpoint
"""
from fastapi import APIRouter, Query
from app.core.config import settings
from app.services.background import get_task_manager
from app.services.cache import CacheManager

router = APIRouter()


@router.get("/health")
async def health_check(include_swr: bool = Query(False, description="Include SWR cache metrics")):
    """Health check endpoint for monitoring"""
    payload = {
        "status": "healthy",
        "version": "1.0.0",
        "base_url": settings.BASE_URL,
        "upstream": settings.UPSTREAM_API_BASE,
        "static_domain": get_task_manager().last_domain or settings.STATIC_BASE,
    }

    if include_swr:
        payload["swr_metrics"] = CacheManager().get_metrics_snapshot()

    return payload
