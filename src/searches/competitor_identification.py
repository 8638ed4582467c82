"""
Competitor identification.

Finds manufacturers competing with CGR for a (region, product, volume)
criteria set. With recherche_multiple, every additional criteria set is
searched through the bounded queue and the results are consolidated,
de-duplicated by company name.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from src.common.config import Config
from src.common.logger import PipelineLogger, get_logger
from src.common.rate_limiter import Provider, RateLimiter, get_rate_limiter
from src.common.repositories.cache_store import CacheStoreInterface, build_cache_key
from src.common.repositories.search_history_repository import SearchHistoryRepositoryInterface
from src.prospecting.models import CompetitorCriteria, CompetitorIdentificationRequest, CompetitorProfile
from src.prospecting.normalizer import (
    coerce_url_list,
    dedupe_by_name,
    normalize_competitor_profile,
    normalize_many,
)
from src.prospecting.prompts import IDENTIFICATION_SYSTEM_PROMPT, build_identification_user_prompt
from src.providers.base import ChatProvider, CompletionOptions

from .base import BaseSearch, SearchOutcome, run_bounded, run_with_timeout

logger = logging.getLogger(__name__)

SEARCH_TYPE = "competitor-identification"


def identification_cache_key(
    region: str,
    produit: str,
    volume: str,
    multiple: bool = False,
    additional_count: int = 0,
) -> str:
    return build_cache_key(
        "competitor-identification",
        "search",
        [
            f"region-{region}",
            f"produit-{produit}",
            f"volume-{volume}",
            f"multiple-{str(bool(multiple)).lower()}",
            f"additional-{additional_count}",
        ],
    )


def request_cache_key(request: CompetitorIdentificationRequest) -> str:
    additional = len(request.criteres_additionnels) if request.recherche_multiple else 0
    return identification_cache_key(
        request.region_geographique,
        request.produit,
        request.volume_production,
        request.recherche_multiple,
        additional,
    )


def _competitor_records(data: Dict[str, Any]) -> Tuple[List[Any], List[str]]:
    analysis = data.get("analysis") if isinstance(data.get("analysis"), dict) else data
    records = analysis.get("competitors")
    sources = coerce_url_list(analysis.get("sources_globales"))
    return (records if isinstance(records, list) else []), sources


def _distinct(values: List[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def competitor_statistics(competitors: List[CompetitorProfile]) -> Dict[str, Any]:
    return {
        "total_concurrents": len(competitors),
        "avec_site_web": sum(1 for c in competitors if c.website),
        "avec_actualites": sum(1 for c in competitors if c.recent_news),
        "avec_publications": sum(1 for c in competitors if c.recent_publications),
        "regions_representees": _distinct([r for c in competitors for r in c.geographic_presence]),
        "marches_identifies": _distinct([m for c in competitors for m in c.target_markets]),
        "specialites_identifiees": _distinct([s for c in competitors for s in c.product_specialties]),
    }


class CompetitorIdentificationSearch(BaseSearch):
    """searchType "competitor-identification"."""

    search_type = SEARCH_TYPE

    def __init__(
        self,
        provider: ChatProvider,
        cache: CacheStoreInterface,
        history: Optional[SearchHistoryRepositoryInterface] = None,
        batch_limiter: Optional[RateLimiter] = None,
        max_concurrency: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ):
        super().__init__(cache, history)
        self.provider = provider
        self.batch_limiter = batch_limiter or get_rate_limiter(Provider.PERPLEXITY_BATCH)
        self.max_concurrency = max_concurrency or Config.BATCH_MAX_CONCURRENCY
        self.delay_seconds = Config.BATCH_DELAY_SECONDS if delay_seconds is None else delay_seconds

    @staticmethod
    def options() -> CompletionOptions:
        return CompletionOptions(
            model=Config.IDENTIFICATION_MODEL,
            max_tokens=Config.IDENTIFICATION_MAX_TOKENS,
            temperature=Config.IDENTIFICATION_TEMPERATURE,
            timeout_seconds=Config.IDENTIFICATION_TIMEOUT,
        )

    async def lookup(
        self,
        region: str,
        produit: str,
        volume: str,
        multiple: bool = False,
        additional_count: int = 0,
    ) -> Optional[Dict[str, Any]]:
        """Cached result for the given criteria, or None."""
        return await self.cached_payload(
            identification_cache_key(region, produit, volume, multiple, additional_count)
        )

    async def _search_criteria(
        self,
        criteria: CompetitorCriteria,
        count: int,
        log: PipelineLogger,
    ) -> Tuple[List[CompetitorProfile], List[str], Dict[str, Any]]:
        """One provider call for one criteria set. Raises ValueError when extraction fails."""
        completion, extraction = await self.ask(
            self.provider,
            IDENTIFICATION_SYSTEM_PROMPT,
            build_identification_user_prompt(
                criteria.region_geographique, criteria.produit, criteria.volume_production, count,
            ),
            self.options(),
            ("analysis",),
            array_key="competitors",
            log=log,
        )
        if not extraction.success:
            raise ValueError(extraction.error or "extraction failed")

        records, global_sources = _competitor_records(extraction.data)
        profiles = normalize_many(records, normalize_competitor_profile)
        matching = criteria.as_dict()
        profiles = [p.model_copy(update={"matching_criteria": matching}) for p in profiles]
        sources = _distinct(global_sources + list(completion.citations))
        log.info(f"{len(profiles)} competitors for {matching}")
        return profiles, sources, extraction.to_debug()

    async def search(self, request: CompetitorIdentificationRequest) -> SearchOutcome:
        log = get_logger(__name__, search_id=uuid.uuid4().hex, stage=self.search_type)
        key = request_cache_key(request)
        cached = await self.cached_payload(key)
        if cached is not None:
            return SearchOutcome(success=True, payload=cached, cached=True)

        criteria_sets = request.criteria_sets()
        count = request.nombre_resultats
        consolidated = len(criteria_sets) > 1

        if consolidated:
            results = await run_with_timeout(
                run_bounded(
                    criteria_sets,
                    lambda c: self._search_criteria(c, count, log),
                    max_concurrency=self.max_concurrency,
                    limiter=self.batch_limiter,
                    delay_seconds=self.delay_seconds,
                ),
                Config.IDENTIFICATION_MULTI_TIMEOUT,
                "competitor identification (multiple criteria)",
            )
        else:
            # single search: timeouts and transport errors propagate as-is
            try:
                results = [await self._search_criteria(criteria_sets[0], count, log)]
            except ValueError as e:
                results = [e]

        competitors: List[CompetitorProfile] = []
        sources: List[str] = []
        failures: List[Dict[str, Any]] = []
        extraction_debug: List[Dict[str, Any]] = []
        for criteria, result in zip(criteria_sets, results):
            if isinstance(result, BaseException):
                log.warning(f"Criteria {criteria.as_dict()} failed: {result}")
                failures.append({"criteria": criteria.as_dict(), "error": str(result)})
                continue
            profiles, set_sources, debug = result
            competitors.extend(profiles)
            sources.extend(s for s in set_sources if s not in sources)
            extraction_debug.append(debug)

        if len(failures) == len(criteria_sets):
            return SearchOutcome(
                success=False,
                error=failures[0]["error"],
                payload={"competitors": [], "total": 0, "success": False, "debug": {"failures": failures}},
            )

        competitors = dedupe_by_name(competitors, key=lambda c: c.company_name)
        if not consolidated:
            competitors = competitors[:count]

        payload: Dict[str, Any] = {
            "searchType": self.search_type,
            "competitors": [c.to_wire() for c in competitors],
            "totalFound": len(competitors),
            "cached": False,
            "sources": sources,
            "searchCriteria": {
                "region_geographique": request.region_geographique,
                "produit": request.produit,
                "volume_production": request.volume_production,
                "recherche_multiple": request.recherche_multiple,
                "criteres_additionnels": [c.model_dump() for c in request.criteres_additionnels],
                "nombre_resultats": count,
            },
            "statistics": competitor_statistics(competitors),
            "hasCompetitors": bool(competitors),
            "consolidated": consolidated,
            "debug": {
                "criteriaSearched": len(criteria_sets),
                "criteriaFailed": failures,
                "extractions": extraction_debug,
            },
        }

        if competitors:
            await self.store_payload(key, payload, Config.IDENTIFICATION_CACHE_TTL)
        await self.record_history(
            product=f"competitor-identification-{request.produit}",
            location=request.region_geographique,
            reference_urls=sources[:20],
            results_count=len(competitors),
            search_query=f"identification concurrents: {request.produit} / {request.volume_production}",
        )
        return SearchOutcome(success=True, payload=payload)
