import logging

from fastapi import APIRouter

from app.api.deps import CacheDep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/clear")
def clear_cache(cache: CacheDep) -> dict:
    """Drop every memoized validation, repair and scoring result."""
    cleared = len(cache)
    cache.clear()
    logger.info("Cleared %s cache entries.", cleared)
    return {"message": "Cache cleared successfully", "cleared": cleared}


@router.get("/stats")
def cache_stats(cache: CacheDep) -> dict[str, int]:
    return cache.stats()
