"""
Provider adapter interface.

Every text-completion provider exposes a single operation:
complete(system_prompt, user_prompt, options) -> CompletionResult.
Adapters issue exactly one request and never retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CompletionOptions:
    """Per-call options for a completion request."""

    model: str
    max_tokens: int = 4000
    temperature: float = 0.3
    timeout_seconds: float = 120.0
    # Provider-specific body fields (search_recency_filter, return_citations, ...)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CompletionResult:
    """Raw completion text plus whatever metadata the provider returned."""

    text: str
    citations: List[str] = field(default_factory=list)
    model: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class ChatProvider(ABC):
    """Abstract chat-completion provider."""

    name: str = "provider"

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions,
    ) -> CompletionResult:
        """
        Issue one completion request.

        Raises:
            SearchTimeoutError: The request exceeded options.timeout_seconds
            ProviderTransportError: HTTP or network failure
            ProviderConfigurationError: Missing credentials
        """
        pass
