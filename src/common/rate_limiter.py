"""
Provider Rate Limiting.

One limiter per provider, shared by every search in the process:

- perplexity        every chat completion
- perplexity_batch  pacing of batch fan-out (competitor names,
                    identification criteria sets)
- apollo            people search and match calls (600 per day by default)
- openai            LLM-written contact pitches

A limiter enforces a sliding one-minute window, an optional daily cap and
an optional minimum spacing between two requests. Limits can be overridden
per provider with {PROVIDER}_RATE_LIMIT_PER_MIN, {PROVIDER}_DAILY_LIMIT and
{PROVIDER}_MIN_INTERVAL.

Usage:
    limiter = get_rate_limiter(Provider.APOLLO)
    if not await limiter.acquire_async():
        ...  # daily cap reached or wait too long
"""

import asyncio
import logging
import os
import threading
import time
from collections import deque
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Optional

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
POLL_SECONDS = 0.5


class Provider(str, Enum):
    PERPLEXITY = "perplexity"
    PERPLEXITY_BATCH = "perplexity_batch"
    APOLLO = "apollo"
    OPENAI = "openai"


DEFAULT_RATE_LIMITS: Dict[str, Dict[str, Optional[int]]] = {
    Provider.PERPLEXITY.value: {"requests_per_minute": 50, "daily_limit": None},
    Provider.PERPLEXITY_BATCH.value: {"requests_per_minute": 20, "daily_limit": None},
    Provider.APOLLO.value: {"requests_per_minute": 50, "daily_limit": 600},
    Provider.OPENAI.value: {"requests_per_minute": 500, "daily_limit": None},
}
FALLBACK_LIMITS: Dict[str, Optional[int]] = {"requests_per_minute": 60, "daily_limit": None}


class RateLimitExceededError(Exception):
    """A limit was hit on a limiter that is not allowed to wait."""

    def __init__(self, provider: str, limit_type: str, current: int, limit: int):
        self.provider = provider
        self.limit_type = limit_type
        self.current = current
        self.limit = limit
        super().__init__(f"Rate limit exceeded for {provider}: {current}/{limit} ({limit_type})")


def _today() -> date:
    return datetime.now(timezone.utc).date()


class RateLimiter:
    """
    Sliding-window limiter for one provider.

    acquire_async() polls until a slot frees up, for at most
    max_wait_seconds. With allow_wait=False it raises instead.
    """

    def __init__(
        self,
        provider: str,
        requests_per_minute: int = 60,
        daily_limit: Optional[int] = None,
        min_interval_seconds: float = 0.0,
        allow_wait: bool = True,
        max_wait_seconds: float = 60.0,
    ):
        self.provider = provider
        self.requests_per_minute = requests_per_minute
        self.daily_limit = daily_limit
        self.min_interval_seconds = min_interval_seconds
        self.allow_wait = allow_wait
        self.max_wait_seconds = max_wait_seconds

        self._lock = threading.Lock()
        self._sent: Deque[float] = deque()
        self._last_sent: Optional[float] = None
        self._day: Optional[date] = None
        self._day_count = 0
        self._total = 0
        self._waits = 0

    # The helpers below expect self._lock to be held.

    def _refresh(self, now: float) -> None:
        while self._sent and self._sent[0] < now - WINDOW_SECONDS:
            self._sent.popleft()
        today = _today()
        if self._day != today:
            self._day = today
            self._day_count = 0

    def _daily_exhausted(self) -> bool:
        return bool(self.daily_limit) and self._day_count >= self.daily_limit

    def _delay(self, now: float) -> float:
        delay = 0.0
        if len(self._sent) >= self.requests_per_minute:
            delay = self._sent[0] + WINDOW_SECONDS - now
        if self.min_interval_seconds and self._last_sent is not None:
            delay = max(delay, self._last_sent + self.min_interval_seconds - now)
        return max(0.0, delay)

    def _take(self, now: float) -> None:
        self._sent.append(now)
        self._last_sent = now
        self._day_count += 1
        self._total += 1

    def check(self) -> bool:
        """True when a request could go out now. Records nothing."""
        with self._lock:
            now = time.time()
            self._refresh(now)
            return not self._daily_exhausted() and self._delay(now) == 0.0

    async def acquire_async(self) -> bool:
        """
        Take a request slot, sleeping while the window is full.

        Returns:
            True once a slot is taken; False when the daily cap is reached or
            the wait would exceed max_wait_seconds

        Raises:
            RateLimitExceededError: a limit is hit and allow_wait is False
        """
        started = time.time()
        while True:
            with self._lock:
                now = time.time()
                self._refresh(now)
                if self._daily_exhausted():
                    if not self.allow_wait:
                        raise RateLimitExceededError(self.provider, "daily", self._day_count, self.daily_limit)
                    logger.warning(f"{self.provider}: daily limit of {self.daily_limit} requests reached")
                    return False
                delay = self._delay(now)
                if delay == 0.0:
                    self._take(now)
                    return True
                in_window = len(self._sent)

            if not self.allow_wait:
                raise RateLimitExceededError(self.provider, "per_minute", in_window, self.requests_per_minute)
            if time.time() - started + delay > self.max_wait_seconds:
                logger.warning(f"{self.provider}: rate limit wait of {delay:.1f}s exceeds {self.max_wait_seconds:g}s")
                return False

            self._waits += 1
            await asyncio.sleep(min(delay, POLL_SECONDS))

    def get_remaining_daily(self) -> Optional[int]:
        if self.daily_limit is None:
            return None
        with self._lock:
            self._refresh(time.time())
            return max(0, self.daily_limit - self._day_count)

    def reset(self) -> None:
        with self._lock:
            self._sent.clear()
            self._last_sent = None
            self._day = None
            self._day_count = 0
            self._total = 0
            self._waits = 0

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            self._refresh(time.time())
            return {
                "provider": self.provider,
                "requests_per_minute": self.requests_per_minute,
                "daily_limit": self.daily_limit,
                "min_interval_seconds": self.min_interval_seconds,
                "total_requests": self._total,
                "requests_this_minute": len(self._sent),
                "requests_today": self._day_count,
                "waits_count": self._waits,
            }


class RateLimiterRegistry:
    """Hands out one RateLimiter per provider name."""

    def __init__(self):
        self._limiters: Dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        provider: str,
        requests_per_minute: Optional[int] = None,
        daily_limit: Optional[int] = None,
        **kwargs,
    ) -> RateLimiter:
        with self._lock:
            limiter = self._limiters.get(provider)
            if limiter is None:
                defaults = DEFAULT_RATE_LIMITS.get(provider, FALLBACK_LIMITS)
                limiter = RateLimiter(
                    provider=provider,
                    requests_per_minute=requests_per_minute or defaults["requests_per_minute"],
                    daily_limit=defaults["daily_limit"] if daily_limit is None else daily_limit,
                    **kwargs,
                )
                self._limiters[provider] = limiter
            return limiter

    def reset_all(self) -> None:
        with self._lock:
            for limiter in self._limiters.values():
                limiter.reset()


_registry: Optional[RateLimiterRegistry] = None


def get_rate_limiter_registry() -> RateLimiterRegistry:
    global _registry
    if _registry is None:
        _registry = RateLimiterRegistry()
    return _registry


def get_rate_limiter(provider) -> RateLimiter:
    """
    Shared limiter for a provider (Provider member or name).

    Environment overrides are read when the limiter is first created.
    """
    name = provider.value if isinstance(provider, Provider) else str(provider)
    env = name.upper()
    defaults = DEFAULT_RATE_LIMITS.get(name, FALLBACK_LIMITS)

    per_minute = int(os.getenv(f"{env}_RATE_LIMIT_PER_MIN", "0")) or defaults["requests_per_minute"]
    daily = os.getenv(f"{env}_DAILY_LIMIT")
    return get_rate_limiter_registry().get_or_create(
        provider=name,
        requests_per_minute=per_minute,
        daily_limit=int(daily) if daily else defaults["daily_limit"],
        min_interval_seconds=float(os.getenv(f"{env}_MIN_INTERVAL", "0")),
    )


def reset_global_registry() -> None:
    """Forget every limiter (tests)."""
    global _registry
    if _registry is not None:
        _registry.reset_all()
    _registry = None
