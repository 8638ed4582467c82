"""
Provider adapters.

Thin clients for the external services: a web-search-augmented chat
completion API (Perplexity), OpenAI chat via LangChain, and the Apollo
contact-enrichment API.
"""

from .base import ChatProvider, CompletionOptions, CompletionResult
from .perplexity import PerplexityClient
from .openai_chat import OpenAIChatProvider
from .apollo import ApolloClient, PeopleSearchRequest

__all__ = [
    "ChatProvider",
    "CompletionOptions",
    "CompletionResult",
    "PerplexityClient",
    "OpenAIChatProvider",
    "ApolloClient",
    "PeopleSearchRequest",
]
