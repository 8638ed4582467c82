"""
Cache Store

Key -> JSON value store with per-entry TTL, backed by Redis.

Search orchestrators read through this store on exact key match only.
Entries are last-writer-wins: two concurrent misses on the same key both
recompute and both write.

Redis unavailability never fails a search: reads degrade to a miss and
writes report False.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "prospect"


def build_cache_key(product: str, location: str, params: Iterable[str] = ()) -> str:
    """
    Deterministic cache key.

    prospect:{product}:{location}:{sorted extra params joined by ","}

    Product and location are lowercased and stripped; extra params are sorted
    so their order in the request does not matter.
    """
    normalized_product = (product or "").lower().strip()
    normalized_location = (location or "").lower().strip()
    extra = ",".join(sorted(str(p) for p in params if p is not None and str(p) != ""))
    return f"{KEY_PREFIX}:{normalized_product}:{normalized_location}:{extra}"


class CacheStoreInterface(ABC):
    """Abstract interface for the search result cache."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Fetch a cached value.

        Returns:
            The decoded JSON value, or None on miss/expiry/error
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """
        Store a JSON-serializable value with a TTL.

        Returns:
            True if stored
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete one key. Returns True if a key was removed."""
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = KEY_PREFIX) -> List[str]:
        """List keys starting with prefix."""
        pass


class RedisCacheStore(CacheStoreInterface):
    """Redis implementation (SETEX + SCAN)."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[Redis] = None):
        """
        Args:
            redis_url: Redis connection URL (defaults to REDIS_URL env var)
            client: Pre-built client, used instead of connecting
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._redis: Optional[Redis] = client

    async def _client(self) -> Redis:
        if self._redis is None:
            self._redis = await aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("Cache store connected to Redis")
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None
            logger.info("Cache store disconnected from Redis")

    async def get(self, key: str) -> Optional[Any]:
        try:
            client = await self._client()
            raw = await client.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Value for {key} is not JSON-serializable: {e}")
            return False
        try:
            client = await self._client()
            await client.setex(key, int(ttl_seconds), payload)
            logger.info(f"Cached {key} (ttl={int(ttl_seconds)}s)")
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            client = await self._client()
            removed = await client.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False
        return bool(removed)

    async def list_keys(self, prefix: str = KEY_PREFIX) -> List[str]:
        keys: List[str] = []
        try:
            client = await self._client()
            async for key in client.scan_iter(match=f"{prefix}*"):
                keys.append(key)
        except Exception as e:
            logger.warning(f"Cache key listing failed for prefix {prefix}: {e}")
            return []
        return sorted(keys)


# Singleton instance
_cache_store_instance: Optional[CacheStoreInterface] = None


def get_cache_store(redis_url: Optional[str] = None) -> CacheStoreInterface:
    """Get the cache store instance (singleton). redis_url is used on first creation only."""
    global _cache_store_instance

    if _cache_store_instance is None:
        _cache_store_instance = RedisCacheStore(redis_url)
        logger.info("Initialized cache store")

    return _cache_store_instance


def reset_cache_store() -> None:
    """Reset the cache store singleton."""
    global _cache_store_instance
    _cache_store_instance = None
