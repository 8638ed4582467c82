"""
Pytest fixtures for prospect service route tests.

Every store and provider is replaced through app.dependency_overrides, so
no test reaches Redis, MongoDB, Perplexity or Apollo.
"""

import os

# IMPORTANT: Set environment variables BEFORE any imports from prospect_service
# so ServiceSettings and Config are loaded with test values.
os.environ["ENVIRONMENT"] = "development"
os.environ["PERPLEXITY_API_KEY"] = "pplx-test-mock-key"
os.environ["APOLLO_API_KEY"] = "apollo-test-mock-key"
os.environ["CONTACT_PITCH_MODE"] = "template"
os.environ["CORS_ORIGINS"] = ""

import pytest
from fastapi.testclient import TestClient

from helpers.fakes import FakeApollo, InMemoryCacheStore, InMemoryHistory, ScriptedProvider
from src.common.rate_limiter import RateLimiter
from src.common.repositories import RevealStore
from src.prospecting.pitch import PitchWriter
from src.prospecting.relevance import RelevanceFilter
from src.prospecting.scoring import ScoringWeights
from src.searches import (
    BrainstormingSearch,
    CompetitorAnalysisSearch,
    CompetitorIdentificationSearch,
    ContactReveal,
    ContactSearch,
    EnterpriseSearch,
)


@pytest.fixture
def cache():
    return InMemoryCacheStore()


@pytest.fixture
def history():
    return InMemoryHistory()


@pytest.fixture
def provider():
    """Scripted Perplexity stand-in; tests append replies before calling."""
    return ScriptedProvider([])


@pytest.fixture
def apollo():
    return FakeApollo()


@pytest.fixture
def client(cache, history, provider, apollo):
    """FastAPI test client with every dependency swapped for a fake."""
    from prospect_service import dependencies as deps
    from prospect_service.app import app

    limiter = RateLimiter("test", requests_per_minute=1000)
    app.dependency_overrides.update({
        deps.get_cache: lambda: cache,
        deps.get_history: lambda: history,
        deps.get_enterprise_search: lambda: EnterpriseSearch(
            provider, cache, history, weights=ScoringWeights()
        ),
        deps.get_brainstorming_search: lambda: BrainstormingSearch(provider, cache, history),
        deps.get_competitor_analysis: lambda: CompetitorAnalysisSearch(
            provider, cache, history, batch_limiter=limiter, delay_seconds=0
        ),
        deps.get_competitor_identification: lambda: CompetitorIdentificationSearch(
            provider, cache, history, batch_limiter=limiter, delay_seconds=0
        ),
        deps.get_contact_search: lambda: ContactSearch(
            apollo, cache, history,
            relevance=RelevanceFilter(threshold=0.5),
            pitch_writer=PitchWriter(mode="template"),
        ),
        deps.get_contact_reveal: lambda: ContactReveal(apollo, RevealStore(cache)),
    })
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
