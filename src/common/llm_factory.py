"""
LLM Factory Module.

Factory for LangChain chat models so every caller builds ChatOpenAI the same
way (key from Config, explicit timeout, no hidden retries).

Usage:
    from src.common.llm_factory import create_chat_llm

    llm = create_chat_llm(model="gpt-4o-mini", temperature=0.7, max_tokens=300)
    response = await llm.ainvoke([SystemMessage(...), HumanMessage(...)])
"""

import logging
from typing import Optional

from langchain_openai import ChatOpenAI

from src.common.config import Config

logger = logging.getLogger(__name__)


def create_chat_llm(
    model: Optional[str] = None,
    temperature: float = 0.3,
    max_tokens: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance.

    Args:
        model: Model name (defaults to Config.PITCH_MODEL)
        temperature: Sampling temperature
        max_tokens: Completion token budget
        timeout_seconds: Request timeout
        api_key: API key (defaults to Config.OPENAI_API_KEY)
        base_url: Optional OpenAI-compatible endpoint

    Returns:
        Configured ChatOpenAI
    """
    model = model or Config.PITCH_MODEL
    kwargs = {
        "model": model,
        "temperature": temperature,
        "api_key": api_key or Config.OPENAI_API_KEY,
        # Retries are the caller's responsibility
        "max_retries": 0,
    }
    if max_tokens:
        kwargs["max_tokens"] = max_tokens
    if timeout_seconds:
        kwargs["timeout"] = timeout_seconds
    if base_url:
        kwargs["base_url"] = base_url

    logger.debug(f"Creating ChatOpenAI model={model} temperature={temperature}")
    return ChatOpenAI(**kwargs)
