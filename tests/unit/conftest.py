"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause a server-selection timeout per test)
- Environment variable isolation (prevents credential leakage)

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import os
import pytest
from unittest.mock import patch, MagicMock

# Set test environment BEFORE any imports so Config never loads real values
os.environ["ENVIRONMENT"] = "development"
os.environ["CONTACT_PITCH_MODE"] = "template"


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    Tests that exercise the history repository patch MongoClient themselves;
    everything else gets this inert client.
    """
    with patch("src.common.repositories.search_history_repository.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    Use mock API keys so an accidental real provider call fails fast.
    """
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("PERPLEXITY_API_KEY", "pplx-test-mock-key")
    monkeypatch.setenv("APOLLO_API_KEY", "apollo-test-mock-key")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-mock-key")
