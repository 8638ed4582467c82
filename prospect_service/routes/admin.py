"""
Cache and History API Routes.

- GET    /api/cache              - List cached search keys
- DELETE /api/cache?cacheKey=    - Drop one cached search
- GET    /api/history?limit=     - Most recent searches
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from src.common.error_handling import ProspectingError, SearchValidationError
from src.common.repositories import CacheStoreInterface, SearchHistoryRepositoryInterface

from ..config import get_settings
from ..dependencies import get_cache, get_history

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["admin"])


@router.get("/cache")
async def list_cache(cache: CacheStoreInterface = Depends(get_cache)) -> Dict[str, Any]:
    keys = await cache.list_keys()
    return {"totalCachedSearches": len(keys), "keys": keys}


@router.delete("/cache")
async def delete_cache_entry(
    cacheKey: Optional[str] = Query(None),
    body: Optional[Dict[str, Any]] = Body(None),
    cache: CacheStoreInterface = Depends(get_cache),
) -> Dict[str, Any]:
    key = cacheKey or (body or {}).get("cacheKey")
    if not key:
        raise SearchValidationError("Clé de cache requise")
    deleted = await cache.delete(key)
    logger.info(f"Cache delete {key}: {deleted}")
    return {"success": True, "deleted": deleted}


@router.get("/history")
async def list_history(
    limit: Optional[int] = Query(None, ge=1, le=200),
    history: Optional[SearchHistoryRepositoryInterface] = Depends(get_history),
) -> Dict[str, Any]:
    if history is None:
        raise ProspectingError(
            "Historique indisponible",
            details="MongoDB is not configured",
            error_type="history_unavailable",
        )
    limit = limit or get_settings().default_history_limit
    try:
        records = await asyncio.to_thread(history.list_recent, limit)
    except Exception as e:
        logger.error(f"History query failed: {e}")
        raise ProspectingError(
            "Erreur lors de la récupération de l'historique",
            details=str(e),
            error_type="history_error",
        )
    return {"history": [r.to_wire() for r in records]}
