"""Listing cache administration routes."""

from fastapi import APIRouter, Depends

from app.api.deps import get_cache_admin
from app.schemas.cache import CacheActionResponse, CacheStatsBody, CacheStatsResponse
from app.services.cache_admin import CacheAdmin

router = APIRouter()


@router.post("/clear", response_model=CacheActionResponse)
async def clear_cache(admin: CacheAdmin = Depends(get_cache_admin)):
    """Drop every cached listing."""
    removed = admin.invalidate_all()
    return CacheActionResponse(message="All cache cleared successfully", removed=removed)


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(admin: CacheAdmin = Depends(get_cache_admin)):
    stats = admin.stats()
    return CacheStatsResponse(
        stats=CacheStatsBody(
            total_entries=stats.total_entries,
            expired_entries=stats.expired_entries,
            active_entries=stats.active_entries,
        )
    )


@router.post("/cleanup", response_model=CacheActionResponse)
async def cleanup_expired_cache(admin: CacheAdmin = Depends(get_cache_admin)):
    """Remove expired listings."""
    removed = admin.sweep_expired()
    return CacheActionResponse(message="Expired cache entries cleaned up", removed=removed)
