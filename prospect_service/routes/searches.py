"""
Search API Routes.

- POST /api/enterprises     - Enterprise (prospect) search
- POST /api/brainstorming   - Market brainstorming
- POST /api/competitors     - Competitor analysis (one name or a batch)
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from src.prospecting.models import BrainstormingRequest, CompetitorAnalysisRequest, EnterpriseSearchRequest
from src.searches import BrainstormingSearch, CompetitorAnalysisSearch, EnterpriseSearch

from ..dependencies import get_brainstorming_search, get_competitor_analysis, get_enterprise_search
from ..errors import outcome_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["searches"])


@router.post("/enterprises")
async def search_enterprises(
    request: EnterpriseSearchRequest,
    search: EnterpriseSearch = Depends(get_enterprise_search),
) -> Dict[str, Any]:
    logger.info(f"Enterprise search: sectors={request.all_sectors()} zones={request.all_zones()}")
    return await outcome_or_raise(
        search.search(request),
        "enterprise_search_error",
        "Erreur lors de la recherche d'entreprises",
    )


@router.post("/brainstorming")
async def brainstorm_markets(
    request: BrainstormingRequest,
    search: BrainstormingSearch = Depends(get_brainstorming_search),
) -> Dict[str, Any]:
    logger.info(f"Brainstorming: sectors={request.all_sectors()}")
    return await outcome_or_raise(
        search.search(request),
        "brainstorming_error",
        "Erreur lors du brainstorming",
    )


@router.post("/competitors")
async def analyze_competitors(
    request: CompetitorAnalysisRequest,
    search: CompetitorAnalysisSearch = Depends(get_competitor_analysis),
) -> Dict[str, Any]:
    logger.info(f"Competitor analysis: {request.names()}")
    return await outcome_or_raise(
        search.search(request),
        "competitor_analysis_error",
        "Erreur lors de l'analyse concurrentielle",
    )
