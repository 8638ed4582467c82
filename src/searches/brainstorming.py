"""
Market brainstorming.

Suggests N niche markets for the CGR catalog. A free-text sector switches
the prompt to a niche-targeted search ("ciblé"); otherwise the provider
explores sub-sectors of the selected sectors ("exploratoire").
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from src.common.config import Config
from src.common.error_handling import NoResultsError, SearchValidationError
from src.common.logger import get_logger
from src.common.repositories.cache_store import CacheStoreInterface, build_cache_key
from src.common.repositories.search_history_repository import SearchHistoryRepositoryInterface
from src.prospecting.catalog import (
    BRAINSTORMING_DEFAULT_PRODUCTS,
    DEFAULT_BRAINSTORMING_ZONES,
    DEFAULT_COMPANY_SIZE,
    exclusion_list,
)
from src.prospecting.models import BrainstormingRequest, MarketOpportunity
from src.prospecting.normalizer import coerce_str, coerce_url_list, normalize_many, normalize_market
from src.prospecting.prompts import BRAINSTORMING_SYSTEM_PROMPT, build_brainstorming_user_prompt
from src.providers.base import ChatProvider, CompletionOptions

from .base import BaseSearch, SearchOutcome

logger = logging.getLogger(__name__)

MODE_TARGETED = "ciblé"
MODE_EXPLORATORY = "exploratoire"


def brainstorming_cache_key(request: BrainstormingRequest) -> str:
    return build_cache_key(
        f"brainstorming-{','.join(request.all_sectors())}",
        ",".join(request.all_zones()) or "global",
        [
            f"products-{','.join(request.produits_cgr) or 'default'}",
            f"size-{request.taille_entreprise or 'all'}",
            f"n-{request.nombre_resultats}",
        ],
    )


class BrainstormingSearch(BaseSearch):
    """searchType "brainstorming"."""

    search_type = "brainstorming"

    def __init__(
        self,
        provider: ChatProvider,
        cache: CacheStoreInterface,
        history: Optional[SearchHistoryRepositoryInterface] = None,
    ):
        super().__init__(cache, history)
        self.provider = provider

    @staticmethod
    def validate(request: BrainstormingRequest) -> None:
        if not request.all_sectors():
            raise SearchValidationError(
                "Au moins un secteur d'activité est requis",
                details="secteursActivite or secteurActiviteLibre must be provided",
            )

    @staticmethod
    def options() -> CompletionOptions:
        return CompletionOptions(
            model=Config.BRAINSTORMING_MODEL,
            max_tokens=Config.BRAINSTORMING_MAX_TOKENS,
            temperature=Config.BRAINSTORMING_TEMPERATURE,
            timeout_seconds=Config.BRAINSTORMING_TIMEOUT,
            extra={"return_citations": True, "search_recency_filter": "month"},
        )

    async def search(self, request: BrainstormingRequest) -> SearchOutcome:
        self.validate(request)
        log = get_logger(__name__, search_id=uuid.uuid4().hex, stage=self.search_type)

        key = brainstorming_cache_key(request)
        cached = await self.cached_payload(key)
        if cached is not None:
            return SearchOutcome(success=True, payload=cached, cached=True)

        niche = request.secteur_activite_libre or None
        general_sector = ", ".join(request.secteurs_activite) or request.secteur_activite_libre
        used_default_products = not request.produits_cgr
        products = request.produits_cgr or list(BRAINSTORMING_DEFAULT_PRODUCTS)
        zones = request.all_zones() or list(DEFAULT_BRAINSTORMING_ZONES)
        mode = MODE_TARGETED if niche else MODE_EXPLORATORY

        user_prompt = build_brainstorming_user_prompt(
            general_sector=general_sector,
            niche=niche,
            products=products,
            zones=zones,
            company_size=request.taille_entreprise or DEFAULT_COMPANY_SIZE,
            exclusions=exclusion_list(request.clients_exclure),
            count=request.nombre_resultats,
        )
        log.info(f"Brainstorming {request.nombre_resultats} markets ({mode}) for {general_sector}")

        completion, extraction = await self.ask(
            self.provider, BRAINSTORMING_SYSTEM_PROMPT, user_prompt, self.options(),
            ("markets",), array_key="markets", log=log,
        )
        if not extraction.success:
            return SearchOutcome(
                success=False,
                error=extraction.error,
                payload={"markets": [], "total": 0, "success": False, "debug": extraction.to_debug()},
            )

        data = extraction.data
        markets: List[MarketOpportunity] = normalize_many(data.get("markets"), normalize_market)
        markets = markets[:request.nombre_resultats]
        if not markets:
            raise NoResultsError(
                "Aucune opportunité de marché exploitable dans la réponse",
                suggestions=["Préciser la niche recherchée", "Sélectionner d'autres secteurs"],
            )

        sources = list(completion.citations)
        for url in coerce_url_list(data.get("sources_perplexity")):
            if url not in sources:
                sources.append(url)
        log.info(f"{len(markets)} market opportunities, {len(sources)} sources in {log.elapsed()}s")

        payload: Dict[str, Any] = {
            "searchType": self.search_type,
            "marketOpportunities": [m.to_wire() for m in markets],
            "totalFound": len(markets),
            "cached": False,
            "sources": sources,
            "analyseTendances": coerce_str(data.get("analyse_tendances")),
            "modeRecherche": mode,
            "nicheSpecifiee": niche,
            "debug": {
                "marketsGenerated": len(markets),
                "searchCriteria": {
                    "secteurGeneral": general_sector,
                    "niche": niche,
                    "taille": request.taille_entreprise or DEFAULT_COMPANY_SIZE,
                    "nombreResultats": request.nombre_resultats,
                },
                "usedDefaultProducts": used_default_products,
                "productsUsed": products,
                "sectorsUsed": request.all_sectors(),
                "zonesUsed": zones,
                **extraction.to_debug(),
            },
        }

        await self.store_payload(key, payload, Config.BRAINSTORMING_CACHE_TTL)
        await self.record_history(
            product=",".join(products),
            location=",".join(zones),
            reference_urls=sources[:20],
            results_count=len(markets),
            search_query=f"brainstorming ({mode}): {general_sector}" + (f" / {niche}" if niche else ""),
        )
        return SearchOutcome(success=True, payload=payload)
