"""
Reveal Store

Pending contact reveals delivered by the Apollo webhook, keyed by a
name + organization fingerprint. Entries expire after REVEAL_TTL seconds
(one hour by default) through the cache store's own TTL.
"""

import logging
from typing import Any, Dict, Optional

from src.common.config import Config

from .cache_store import CacheStoreInterface

logger = logging.getLogger(__name__)

KEY_PREFIX = "reveal:"


def reveal_fingerprint(first_name: str, last_name: str, organization: Optional[str] = None) -> str:
    """'Jean', 'Dupont', 'ACME' -> 'jean_dupont_acme'"""
    return f"{first_name}_{last_name}_{organization or 'unknown'}".lower()


class RevealStore:
    """Owned, TTL-evicting store of webhook-delivered reveals."""

    def __init__(self, cache: CacheStoreInterface, ttl_seconds: Optional[int] = None):
        self.cache = cache
        self.ttl_seconds = ttl_seconds or Config.REVEAL_TTL

    def _key(self, first_name: str, last_name: str, organization: Optional[str]) -> str:
        return KEY_PREFIX + reveal_fingerprint(first_name, last_name, organization)

    async def put(
        self,
        first_name: str,
        last_name: str,
        organization: Optional[str],
        payload: Dict[str, Any],
    ) -> bool:
        key = self._key(first_name, last_name, organization)
        stored = await self.cache.set(key, payload, self.ttl_seconds)
        if stored:
            logger.info(f"Stored pending reveal {key}")
        return stored

    async def get(
        self,
        first_name: str,
        last_name: str,
        organization: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        return await self.cache.get(self._key(first_name, last_name, organization))
