"""
Shared plumbing for the search orchestrators.

Every search runs the same pipeline:

    cache check -> provider call (timeout) -> extract -> repair? -> normalize
        -> score/filter -> cache write -> history -> respond

Extraction and normalization problems never raise: they end in a
SearchOutcome(success=False). Timeouts and provider transport errors
propagate to the HTTP layer.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from src.common.error_handling import ProviderTransportError, SearchTimeoutError, pipeline_operation
from src.common.json_utils import ExtractionResult, parse_llm_response
from src.common.logger import PipelineLogger, get_logger
from src.common.rate_limiter import RateLimiter
from src.common.repositories.cache_store import CacheStoreInterface
from src.common.repositories.search_history_repository import SearchHistoryRepositoryInterface
from src.providers.base import ChatProvider, CompletionOptions, CompletionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class SearchOutcome:
    """Result of one orchestrator run, before HTTP mapping."""

    success: bool
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    cached: bool = False


async def run_with_timeout(coro: Awaitable[T], seconds: float, stage: str) -> T:
    """Await coro within seconds, raising SearchTimeoutError(stage) otherwise."""
    try:
        return await asyncio.wait_for(coro, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{stage} exceeded {seconds:g}s")
        raise SearchTimeoutError(stage, seconds)


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    max_concurrency: int = 1,
    limiter: Optional[RateLimiter] = None,
    delay_seconds: float = 0.0,
) -> List[R]:
    """
    Run worker over items with bounded concurrency.

    At most max_concurrency workers run at once. Before each start the
    limiter (if any) is acquired and, except for the first item, the task
    waits delay_seconds. An item the limiter refuses (daily cap, wait too
    long) is not run and gets a ProviderTransportError (429). Results keep the
    order of items. A worker exception is returned in place of its result,
    never raised.
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    started = 0
    start_lock = asyncio.Lock()

    async def _run(item: T):
        nonlocal started
        async with semaphore:
            async with start_lock:
                if started and delay_seconds > 0:
                    await asyncio.sleep(delay_seconds)
                started += 1
                if limiter is not None and not await limiter.acquire_async():
                    raise ProviderTransportError(
                        limiter.provider, f"{limiter.provider} rate limit reached", status=429
                    )
            return await worker(item)

    return await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)


class BaseSearch:
    """Common dependencies and cache/history helpers for orchestrators."""

    search_type: str = "search"

    def __init__(
        self,
        cache: CacheStoreInterface,
        history: Optional[SearchHistoryRepositoryInterface] = None,
    ):
        self.cache = cache
        self.history = history

    async def cached_payload(self, key: str) -> Optional[Dict[str, Any]]:
        payload = await self.cache.get(key)
        if not isinstance(payload, dict):
            return None
        logger.info(f"[{self.search_type}] cache hit {key}")
        return {**payload, "cached": True}

    async def store_payload(self, key: str, payload: Dict[str, Any], ttl_seconds: int) -> None:
        """Cache payload with cached=False; the flag is set on read."""
        await self.cache.set(key, {**payload, "cached": False}, ttl_seconds)

    @pipeline_operation("history insert", stage="history", fallback_value=None)
    async def record_history(
        self,
        product: str,
        location: str,
        reference_urls: List[str],
        results_count: int,
        search_query: str,
    ) -> Optional[str]:
        """Append a history row. Failures are logged, never raised."""
        if self.history is None:
            return None
        return await asyncio.to_thread(
            self.history.insert,
            product,
            location,
            reference_urls,
            results_count,
            search_query,
        )

    async def ask(
        self,
        provider: ChatProvider,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions,
        discriminators: Sequence[str],
        array_key: Optional[str] = None,
        log: Optional[PipelineLogger] = None,
    ) -> Tuple[CompletionResult, ExtractionResult]:
        """One provider call under the feature timeout, then JSON extraction."""
        log = log or get_logger(__name__, stage=self.search_type)
        completion = await run_with_timeout(
            provider.complete(system_prompt, user_prompt, options),
            options.timeout_seconds,
            f"{self.search_type} provider call",
        )
        extraction = parse_llm_response(completion.text, discriminators, array_key)
        if extraction.success:
            log.info(f"Extracted JSON via {extraction.strategy} (repaired={extraction.repaired})")
        else:
            log.warning(f"Extraction failed: {extraction.error}. Raw (first 500 chars): {extraction.raw_snippet}")
        return completion, extraction
