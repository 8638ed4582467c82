"""
FastAPI dependency providers.

Stores and orchestrators are built once per process from ServiceSettings and
Config. Tests replace them through app.dependency_overrides.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from src.common.config import Config
from src.common.repositories import (
    CacheStoreInterface,
    RevealStore,
    SearchHistoryRepositoryInterface,
    get_cache_store,
    get_search_history_repository,
)
from src.prospecting.pitch import PitchWriter
from src.providers import ApolloClient, OpenAIChatProvider, PerplexityClient
from src.searches import (
    BrainstormingSearch,
    CompetitorAnalysisSearch,
    CompetitorIdentificationSearch,
    ContactReveal,
    ContactSearch,
    EnterpriseSearch,
)

from .config import get_settings

logger = logging.getLogger(__name__)


def get_cache() -> CacheStoreInterface:
    return get_cache_store(get_settings().redis_url)


def get_history() -> Optional[SearchHistoryRepositoryInterface]:
    """History repository, or None when MongoDB is not configured."""
    settings = get_settings()
    try:
        return get_search_history_repository(
            settings.mongodb_uri, settings.mongo_db_name, settings.history_collection
        )
    except ValueError as e:
        logger.warning(f"Search history disabled: {e}")
        return None


@lru_cache()
def get_perplexity() -> PerplexityClient:
    return PerplexityClient()


@lru_cache()
def get_apollo() -> ApolloClient:
    return ApolloClient()


def get_pitch_writer() -> PitchWriter:
    if Config.CONTACT_PITCH_MODE == "llm":
        return PitchWriter(provider=OpenAIChatProvider(), mode="llm")
    return PitchWriter(mode="template")


def get_enterprise_search(
    cache: CacheStoreInterface = Depends(get_cache),
    history: Optional[SearchHistoryRepositoryInterface] = Depends(get_history),
) -> EnterpriseSearch:
    return EnterpriseSearch(get_perplexity(), cache, history)


def get_brainstorming_search(
    cache: CacheStoreInterface = Depends(get_cache),
    history: Optional[SearchHistoryRepositoryInterface] = Depends(get_history),
) -> BrainstormingSearch:
    return BrainstormingSearch(get_perplexity(), cache, history)


def get_competitor_analysis(
    cache: CacheStoreInterface = Depends(get_cache),
    history: Optional[SearchHistoryRepositoryInterface] = Depends(get_history),
) -> CompetitorAnalysisSearch:
    return CompetitorAnalysisSearch(get_perplexity(), cache, history)


def get_competitor_identification(
    cache: CacheStoreInterface = Depends(get_cache),
    history: Optional[SearchHistoryRepositoryInterface] = Depends(get_history),
) -> CompetitorIdentificationSearch:
    return CompetitorIdentificationSearch(get_perplexity(), cache, history)


def get_contact_search(
    cache: CacheStoreInterface = Depends(get_cache),
    history: Optional[SearchHistoryRepositoryInterface] = Depends(get_history),
    pitch_writer: PitchWriter = Depends(get_pitch_writer),
) -> ContactSearch:
    return ContactSearch(get_apollo(), cache, history, pitch_writer=pitch_writer)


def get_contact_reveal(cache: CacheStoreInterface = Depends(get_cache)) -> ContactReveal:
    return ContactReveal(get_apollo(), RevealStore(cache))
