"""
Competitor analysis.

In-depth analysis of one named competitor, or of a batch of up to 10 names.
Each name is cached on its own, so a batch re-uses earlier single analyses.
Batches are paced through run_bounded with the batch rate limiter.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from src.common.config import Config
from src.common.error_handling import ProspectingError, SearchValidationError
from src.common.logger import PipelineLogger, get_logger
from src.common.rate_limiter import Provider, RateLimiter, get_rate_limiter
from src.common.repositories.cache_store import CacheStoreInterface, build_cache_key
from src.common.repositories.search_history_repository import SearchHistoryRepositoryInterface
from src.prospecting.models import CompetitorAnalysisRequest
from src.prospecting.normalizer import normalize_competitor_analysis
from src.prospecting.prompts import COMPETITOR_ANALYSIS_SYSTEM_PROMPT, build_competitor_analysis_user_prompt
from src.providers.base import ChatProvider, CompletionOptions

from .base import BaseSearch, SearchOutcome, run_bounded

logger = logging.getLogger(__name__)


def competitor_cache_key(name: str) -> str:
    return build_cache_key(f"competitor-{name}", "analysis")


class CompetitorAnalysisSearch(BaseSearch):
    """searchType "concurrent"."""

    search_type = "concurrent"

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
            model=Config.COMPETITOR_MODEL,
            max_tokens=Config.COMPETITOR_MAX_TOKENS,
            temperature=Config.COMPETITOR_TEMPERATURE,
            timeout_seconds=Config.COMPETITOR_TIMEOUT,
        )

    async def search(self, request: CompetitorAnalysisRequest) -> SearchOutcome:
        names = request.names()
        if not names:
            raise SearchValidationError(
                "Nom du concurrent requis",
                details="nomConcurrent or nomsConcurrents must be provided",
            )
        log = get_logger(__name__, search_id=uuid.uuid4().hex, stage=self.search_type)
        if len(names) == 1:
            return await self.analyze(names[0], log)
        return await self.analyze_batch(names, log)

    async def analyze(self, name: str, log: Optional[PipelineLogger] = None) -> SearchOutcome:
        """Analyze one competitor (cache-first)."""
        log = log or get_logger(__name__, stage=self.search_type)
        key = competitor_cache_key(name)
        cached = await self.cached_payload(key)
        if cached is not None:
            return SearchOutcome(success=True, payload=cached, cached=True)

        log.info(f"Analyzing competitor {name}")
        completion, extraction = await self.ask(
            self.provider,
            COMPETITOR_ANALYSIS_SYSTEM_PROMPT,
            build_competitor_analysis_user_prompt(name),
            self.options(),
            ("analysis",),
            log=log,
        )
        if not extraction.success:
            return SearchOutcome(
                success=False,
                error=extraction.error,
                payload={"competitorAnalysis": None, "success": False, "debug": extraction.to_debug()},
            )

        record = extraction.data.get("analysis", extraction.data)
        analysis = normalize_competitor_analysis(record if isinstance(record, dict) else {}, company_name=name)
        if analysis is None:
            log.warning(f"Analysis of {name} has no company summary")
            return SearchOutcome(
                success=False,
                error="Analyse concurrentielle incomplète",
                payload={"competitorAnalysis": None, "success": False, "debug": extraction.to_debug()},
            )

        sources = list(analysis.sources)
        for url in completion.citations:
            if url not in sources:
                sources.append(url)

        payload: Dict[str, Any] = {
            "searchType": self.search_type,
            "competitorAnalysis": analysis.to_wire(),
            "totalFound": 1,
            "cached": False,
            "sources": sources,
            "hasCompetitorAnalysis": True,
            "debug": {
                "competitorName": name,
                "productsFound": len(analysis.products_services),
                "strengthsFound": len(analysis.apparent_strengths),
                "weaknessesFound": len(analysis.potential_weaknesses),
                **extraction.to_debug(),
            },
        }
        await self.store_payload(key, payload, Config.COMPETITOR_CACHE_TTL)
        await self.record_history(
            product=f"competitor-{name}",
            location="analysis",
            reference_urls=sources[:20],
            results_count=1,
            search_query=f"analyse concurrentielle: {name}",
        )
        return SearchOutcome(success=True, payload=payload)

    async def analyze_batch(self, names: List[str], log: PipelineLogger) -> SearchOutcome:
        """
        Analyze several competitors through the bounded queue.

        A failing name (extraction, timeout, provider error) is reported in
        its own item and does not stop the others.
        """
        log.info(f"Batch analysis of {len(names)} competitors (concurrency={self.max_concurrency})")
        results = await run_bounded(
            names,
            lambda name: self.analyze(name, log),
            max_concurrency=self.max_concurrency,
            limiter=self.batch_limiter,
            delay_seconds=self.delay_seconds,
        )

        items: List[Dict[str, Any]] = []
        sources: List[str] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                error_type = result.error_type if isinstance(result, ProspectingError) else "competitor_analysis_error"
                log.warning(f"Analysis of {name} failed: {result}")
                items.append({"name": name, "success": False, "error": str(result), "type": error_type})
                continue
            if not result.success:
                items.append({
                    "name": name,
                    "success": False,
                    "error": result.error,
                    "type": "competitor_analysis_error",
                })
                continue
            items.append({
                "name": name,
                "success": True,
                "cached": result.cached,
                "competitorAnalysis": result.payload["competitorAnalysis"],
            })
            for url in result.payload.get("sources", []):
                if url not in sources:
                    sources.append(url)

        succeeded = sum(1 for item in items if item["success"])
        payload: Dict[str, Any] = {
            "searchType": self.search_type,
            "analyses": items,
            "totalFound": succeeded,
            "cached": False,
            "sources": sources,
            "hasCompetitorAnalysis": succeeded > 0,
            "debug": {"requested": len(names), "succeeded": succeeded, "failed": len(names) - succeeded},
        }
        if not succeeded:
            return SearchOutcome(success=False, error="Toutes les analyses ont échoué", payload=payload)
        return SearchOutcome(success=True, payload=payload)
