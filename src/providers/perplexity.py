"""
Perplexity chat-completion adapter.

Single HTTP POST to {base_url}/chat/completions with bearer-token auth.
Returns the assistant message text and the citation URLs Perplexity attaches
to web-search-augmented answers.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from src.common.config import Config
from src.common.error_handling import (
    ProviderConfigurationError,
    ProviderTransportError,
    SearchTimeoutError,
)
from src.common.rate_limiter import Provider, RateLimiter, RateLimitExceededError, get_rate_limiter

from .base import ChatProvider, CompletionOptions, CompletionResult

logger = logging.getLogger(__name__)


class PerplexityClient(ChatProvider):
    """Perplexity API client (OpenAI-compatible chat completions)."""

    name = "perplexity"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Bearer token (defaults to Config.PERPLEXITY_API_KEY)
            base_url: API root (defaults to Config.PERPLEXITY_BASE_URL)
            rate_limiter: Limiter acquired before each call
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.api_key = api_key if api_key is not None else Config.PERPLEXITY_API_KEY
        self.base_url = (base_url or Config.PERPLEXITY_BASE_URL).rstrip("/")
        self.rate_limiter = rate_limiter or get_rate_limiter(Provider.PERPLEXITY)
        self._transport = transport

    def _build_body(self, system_prompt: str, user_prompt: str, options: CompletionOptions) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": options.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        body.update(options.extra)
        return body

    @staticmethod
    def _citations(data: Dict[str, Any]) -> List[str]:
        citations = data.get("citations") or []
        if not citations:
            # newer responses carry search_results [{url, title}, ...]
            citations = [r.get("url") for r in data.get("search_results") or [] if isinstance(r, dict)]
        return [c for c in citations if isinstance(c, str) and c]

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions,
    ) -> CompletionResult:
        if not self.api_key:
            raise ProviderConfigurationError(
                "Configuration API manquante",
                details="PERPLEXITY_API_KEY is not configured",
            )

        try:
            acquired = await self.rate_limiter.acquire_async()
        except RateLimitExceededError as e:
            raise ProviderTransportError(self.name, str(e), status=429)
        if not acquired:
            raise ProviderTransportError(self.name, "Perplexity rate limit reached", status=429)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = self._build_body(system_prompt, user_prompt, options)
        logger.info(
            f"Perplexity request model={options.model} max_tokens={options.max_tokens} "
            f"temperature={options.temperature}"
        )

        try:
            async with httpx.AsyncClient(
                timeout=options.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions", json=body, headers=headers
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            raise SearchTimeoutError("perplexity call", options.timeout_seconds)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Perplexity API error {status}: {e.response.text[:300]}")
            raise ProviderTransportError(
                self.name, f"Perplexity API error: HTTP {status}", status=status, details=e.response.text[:500]
            )
        except httpx.HTTPError as e:
            logger.error(f"Perplexity transport error: {e}")
            raise ProviderTransportError(self.name, f"Perplexity transport error: {e}")
        except ValueError as e:
            raise ProviderTransportError(self.name, f"Perplexity returned a non-JSON body: {e}")

        choices = data.get("choices") or []
        text = ""
        if choices:
            text = (choices[0].get("message") or {}).get("content") or ""
        citations = self._citations(data)
        logger.info(f"Perplexity response received: {len(text)} chars, {len(citations)} citations")

        return CompletionResult(text=text, citations=citations, model=data.get("model"), raw=data)
