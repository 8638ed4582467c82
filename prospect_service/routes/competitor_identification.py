"""
Competitor Identification API Routes.

- POST /api/competitor-identification - Identify competing manufacturers
- GET  /api/competitor-identification - Cached result for the same criteria
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from src.common.error_handling import NoResultsError, SearchValidationError
from src.prospecting.models import CompetitorIdentificationRequest
from src.searches import CompetitorIdentificationSearch

from ..dependencies import get_competitor_identification
from ..errors import outcome_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/competitor-identification", tags=["competitor-identification"])


@router.post("")
async def identify_competitors(
    request: CompetitorIdentificationRequest,
    search: CompetitorIdentificationSearch = Depends(get_competitor_identification),
) -> Dict[str, Any]:
    logger.info(
        f"Competitor identification: {request.region_geographique} / {request.produit} / "
        f"{request.volume_production} (multiple={request.recherche_multiple})"
    )
    return await outcome_or_raise(
        search.search(request),
        "competitor_identification_error",
        "Erreur lors de l'identification des concurrents",
    )


@router.get("")
async def get_cached_identification(
    region: Optional[str] = Query(None),
    produit: Optional[str] = Query(None),
    volume: Optional[str] = Query(None),
    multiple: bool = Query(False),
    additional: int = Query(0, ge=0),
    search: CompetitorIdentificationSearch = Depends(get_competitor_identification),
) -> Dict[str, Any]:
    if not region or not produit or not volume:
        raise SearchValidationError("Paramètres region, produit et volume requis")
    cached = await search.lookup(region, produit, volume, multiple, additional)
    if cached is None:
        raise NoResultsError("Aucune identification en cache pour ces critères")
    return cached
