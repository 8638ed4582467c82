"""
Storage layer for prospecting searches.

Public API:
- get_cache_store(): Redis-backed search result cache (key -> JSON, TTL)
- get_search_history_repository(): MongoDB append-only search history
- RevealStore: pending Apollo webhook reveals on top of the cache store
- build_cache_key(): deterministic prospect:{product}:{location}:{params} key

Usage:
    from src.common.repositories import build_cache_key, get_cache_store

    cache = get_cache_store()
    key = build_cache_key("ressorts", "france", ["results-5"])
    payload = await cache.get(key)
"""

from .cache_store import (
    CacheStoreInterface,
    RedisCacheStore,
    build_cache_key,
    get_cache_store,
    reset_cache_store,
)
from .reveal_store import RevealStore, reveal_fingerprint
from .search_history_repository import (
    MongoSearchHistoryRepository,
    SearchHistoryRepositoryInterface,
    get_search_history_repository,
    reset_search_history_repository,
)

__all__ = [
    # Cache
    "CacheStoreInterface",
    "RedisCacheStore",
    "build_cache_key",
    "get_cache_store",
    "reset_cache_store",
    # History
    "SearchHistoryRepositoryInterface",
    "MongoSearchHistoryRepository",
    "get_search_history_repository",
    "reset_search_history_repository",
    # Reveals
    "RevealStore",
    "reveal_fingerprint",
]
