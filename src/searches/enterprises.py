"""
Enterprise (prospect) search.

Finds manufacturers that could buy CGR components, scores them and returns
the best N as prospects.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from src.common.config import Config
from src.common.error_handling import ErrorCollector, NoResultsError, SearchValidationError
from src.common.logger import get_logger
from src.common.repositories.cache_store import CacheStoreInterface, build_cache_key
from src.common.repositories.search_history_repository import SearchHistoryRepositoryInterface
from src.prospecting.catalog import (
    DEFAULT_COMPANY_SIZE,
    DEFAULT_FACTORIES,
    DEFAULT_KEYWORDS,
    ENTERPRISE_DEFAULT_PRODUCTS,
    NO_RESULTS_SUGGESTIONS,
    exclusion_list,
    is_excluded,
)
from src.prospecting.models import Enterprise, EnterpriseSearchRequest
from src.prospecting.normalizer import normalize_enterprise, normalize_many
from src.prospecting.prompts import ENTERPRISE_SYSTEM_PROMPT, build_enterprise_user_prompt
from src.prospecting.scoring import ScoringWeights, rank_prospects, score_stats
from src.providers.base import ChatProvider, CompletionOptions

from .base import BaseSearch, SearchOutcome

logger = logging.getLogger(__name__)

MAX_ENTERPRISES = 15
DISCRIMINATORS = ("enterprises", "prospects", "entreprises")
SEARCH_DOMAINS = ["linkedin.com", "companieshouse.gov.uk", "societe.com", "verif.com"]


def enterprise_cache_key(request: EnterpriseSearchRequest) -> str:
    products = ",".join(request.produits_cgr) or "default"
    product = "-".join(p for p in (products, request.autres_produits) if p)
    return build_cache_key(
        product,
        ",".join(request.all_zones()),
        [
            ",".join(request.all_sectors()),
            request.mots_cles,
            request.taille_entreprise,
            f"n-{request.nombre_resultats}",
        ],
    )


def _entity_records(data: Dict[str, Any]) -> List[Any]:
    for key in DISCRIMINATORS:
        records = data.get(key)
        if isinstance(records, list):
            return records
    return []


def _flatten_sources(lists: List[List[str]]) -> List[str]:
    flat: List[str] = []
    for sources in lists:
        for url in sources:
            if url not in flat:
                flat.append(url)
    return flat


class EnterpriseSearch(BaseSearch):
    """searchType "entreprises"."""

    search_type = "entreprises"

    def __init__(
        self,
        provider: ChatProvider,
        cache: CacheStoreInterface,
        history: Optional[SearchHistoryRepositoryInterface] = None,
        weights: Optional[ScoringWeights] = None,
    ):
        super().__init__(cache, history)
        self.provider = provider
        self.weights = weights or ScoringWeights.from_config()

    @staticmethod
    def validate(request: EnterpriseSearchRequest) -> None:
        if not request.all_sectors():
            raise SearchValidationError(
                "Au moins un secteur d'activité est requis",
                details="secteursActivite or secteurActiviteLibre must be provided",
            )
        if not request.all_zones():
            raise SearchValidationError(
                "Au moins une zone géographique est requise",
                details="zoneGeographique or zoneGeographiqueLibre must be provided",
            )

    @staticmethod
    def options() -> CompletionOptions:
        return CompletionOptions(
            model=Config.ENTERPRISE_MODEL,
            max_tokens=Config.ENTERPRISE_MAX_TOKENS,
            temperature=Config.ENTERPRISE_TEMPERATURE,
            timeout_seconds=Config.ENTERPRISE_TIMEOUT,
            extra={
                "search_recency_filter": "month",
                "search_domain_filter": SEARCH_DOMAINS,
            },
        )

    async def search(self, request: EnterpriseSearchRequest) -> SearchOutcome:
        """
        Run the enterprise search.

        Raises:
            SearchValidationError: no sector or no zone
            NoResultsError: no enterprise survived normalization, exclusion and ranking
            SearchTimeoutError / ProviderTransportError: provider failures
        """
        self.validate(request)
        log = get_logger(__name__, search_id=uuid.uuid4().hex, stage=self.search_type)

        key = enterprise_cache_key(request)
        cached = await self.cached_payload(key)
        if cached is not None:
            return SearchOutcome(success=True, payload=cached, cached=True)

        sectors = request.all_sectors()
        zones = request.all_zones()
        products = request.produits_cgr or list(ENTERPRISE_DEFAULT_PRODUCTS)
        if request.autres_produits:
            products = products + [request.autres_produits]
        exclusions = exclusion_list(request.clients_exclure)
        size = request.taille_entreprise or DEFAULT_COMPANY_SIZE
        errors = ErrorCollector()

        user_prompt = build_enterprise_user_prompt(
            sectors=sectors,
            zones=zones,
            company_size=size,
            products=products,
            keywords=request.mots_cles or DEFAULT_KEYWORDS,
            factories=request.usines_cgr or list(DEFAULT_FACTORIES),
            exclusions=exclusions,
            count=request.nombre_resultats,
        )
        log.info(f"Searching {request.nombre_resultats} enterprises in {sectors} / {zones}")

        completion, extraction = await self.ask(
            self.provider, ENTERPRISE_SYSTEM_PROMPT, user_prompt, self.options(),
            DISCRIMINATORS, array_key="enterprises", log=log,
        )
        if not extraction.success:
            return SearchOutcome(
                success=False,
                error=extraction.error,
                payload={"prospects": [], "total": 0, "success": False, "debug": extraction.to_debug()},
            )

        records = _entity_records(extraction.data)
        enterprises: List[Enterprise] = normalize_many(records, normalize_enterprise)
        if len(enterprises) < len(records):
            errors.add_error(
                "normalize", "enterprise_record",
                f"{len(records) - len(enterprises)} enterprise records rejected",
            )

        kept = [e for e in enterprises if not is_excluded(e.name, exclusions)]
        for excluded in (e for e in enterprises if e not in kept):
            log.info(f"Excluded existing client {excluded.name}")
        kept = kept[:MAX_ENTERPRISES]

        prospects = rank_prospects(kept, request.nombre_resultats, self.weights, request.taille_entreprise)
        if not prospects:
            raise NoResultsError(
                "Aucune entreprise trouvée avec les critères spécifiés",
                suggestions=NO_RESULTS_SUGGESTIONS,
            )

        sources = _flatten_sources([p.sources for p in prospects])
        stats = score_stats(prospects)
        log.info(
            f"{len(prospects)} prospects (avg {stats['average']}, best {stats['highest']}) "
            f"from {len(records)} records in {log.elapsed()}s"
        )

        payload: Dict[str, Any] = {
            "searchType": self.search_type,
            "prospects": [p.to_wire() for p in prospects],
            "totalFound": len(prospects),
            "cached": False,
            "sources": sources,
            "debug": {
                "companiesFound": len(enterprises),
                "enterpriseDetails": [
                    {"company": p.company, "score": p.score, "website": p.website} for p in prospects
                ],
                "scoreStats": stats,
                "searchCriteria": {
                    "sectorsUsed": sectors,
                    "zonesUsed": zones,
                    "searchParams": {
                        "produits": products,
                        "taille": size,
                        "motsCles": request.mots_cles,
                        "nombreResultats": request.nombre_resultats,
                    },
                },
                "citations": completion.citations,
                **extraction.to_debug(),
                "warnings": errors.to_list(),
            },
        }

        await self.store_payload(key, payload, Config.ENTERPRISE_CACHE_TTL)
        await self.record_history(
            product=",".join(products),
            location=",".join(zones),
            reference_urls=sources[:20],
            results_count=len(prospects),
            search_query=f"entreprises: {', '.join(sectors)}",
        )
        return SearchOutcome(success=True, payload=payload)
