"""
OpenAI chat adapter via LangChain.

Used for short generations (personalised contact pitches) where web search
is not needed.
"""

import asyncio
import logging
from typing import Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from src.common.config import Config
from src.common.error_handling import (
    ProviderConfigurationError,
    ProviderTransportError,
    SearchTimeoutError,
)
from src.common.llm_factory import create_chat_llm
from src.common.rate_limiter import Provider, RateLimiter, get_rate_limiter

from .base import ChatProvider, CompletionOptions, CompletionResult

logger = logging.getLogger(__name__)


class OpenAIChatProvider(ChatProvider):
    """ChatOpenAI-backed provider."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
        llm_factory: Callable = create_chat_llm,
    ):
        self.api_key = api_key if api_key is not None else Config.OPENAI_API_KEY
        self.rate_limiter = rate_limiter or get_rate_limiter(Provider.OPENAI)
        self._llm_factory = llm_factory

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions,
    ) -> CompletionResult:
        if not self.api_key:
            raise ProviderConfigurationError(
                "Configuration API manquante",
                details="OPENAI_API_KEY is not configured",
            )
        if not await self.rate_limiter.acquire_async():
            raise ProviderTransportError(self.name, "OpenAI rate limit reached", status=429)

        llm = self._llm_factory(
            model=options.model,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            timeout_seconds=options.timeout_seconds,
            api_key=self.api_key,
        )
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

        try:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=options.timeout_seconds)
        except asyncio.TimeoutError:
            raise SearchTimeoutError("openai call", options.timeout_seconds)
        except Exception as e:
            logger.error(f"OpenAI call failed: {e}")
            raise ProviderTransportError(self.name, f"OpenAI error: {e}")

        content = response.content if isinstance(response.content, str) else str(response.content)
        return CompletionResult(text=content.strip(), model=options.model)
