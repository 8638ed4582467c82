"""
Search History Repository

Repository interface for the search_history collection.
Append-only record of completed (non-cached) searches: nothing in this
system updates or deletes a history row.
"""

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pymongo import DESCENDING, MongoClient

from src.prospecting.models import SearchHistoryRecord

logger = logging.getLogger(__name__)


class SearchHistoryRepositoryInterface(ABC):
    """
    Abstract interface for the search history collection.

    Each document stores:
    - product / location: the normalized search subject
    - reference_urls: source URLs returned by the provider
    - results_count, search_query, created_at
    """

    @abstractmethod
    def insert(
        self,
        product: str,
        location: str,
        reference_urls: List[str],
        results_count: int,
        search_query: str,
    ) -> str:
        """
        Append one history record.

        Returns:
            Generated record id
        """
        pass

    @abstractmethod
    def list_recent(self, limit: int = 10) -> List[SearchHistoryRecord]:
        """Most recent records first."""
        pass


class MongoSearchHistoryRepository(SearchHistoryRepositoryInterface):
    """
    MongoDB implementation of SearchHistoryRepository.
    """

    _client: Optional[MongoClient] = None

    def __init__(
        self,
        mongodb_uri: Optional[str] = None,
        database: Optional[str] = None,
        collection: Optional[str] = None,
    ):
        """
        Initialize the repository.

        Args:
            mongodb_uri: MongoDB connection string (defaults to MONGODB_URI env var)
            database: Database name (defaults to MONGO_DB_NAME or "prospecting")
            collection: Collection name (defaults to "search_history")
        """
        self._mongodb_uri = mongodb_uri or os.getenv("MONGODB_URI")
        self._database = database or os.getenv("MONGO_DB_NAME", "prospecting")
        self._collection_name = collection or os.getenv("HISTORY_COLLECTION", "search_history")

        if not self._mongodb_uri:
            raise ValueError("MongoDB URI is required")

    def _get_client(self) -> MongoClient:
        """Get or create the MongoDB client (singleton)."""
        if MongoSearchHistoryRepository._client is None:
            MongoSearchHistoryRepository._client = MongoClient(self._mongodb_uri)
            logger.info("Created new MongoDB client for search_history repository")
        return MongoSearchHistoryRepository._client

    def _get_collection(self):
        client = self._get_client()
        return client[self._database][self._collection_name]

    @classmethod
    def reset_connection(cls) -> None:
        """Reset the MongoDB client connection."""
        if cls._client is not None:
            cls._client.close()
            cls._client = None
            logger.info("Search history repository connection reset")

    def insert(
        self,
        product: str,
        location: str,
        reference_urls: List[str],
        results_count: int,
        search_query: str,
    ) -> str:
        record_id = uuid4().hex
        document = {
            "_id": record_id,
            "product": product,
            "location": location,
            "reference_urls": list(reference_urls or []),
            "results_count": int(results_count),
            "search_query": search_query,
            "created_at": datetime.now(timezone.utc),
        }
        self._get_collection().insert_one(document)
        logger.debug(f"Recorded search history {record_id} ({product} / {location})")
        return record_id

    def list_recent(self, limit: int = 10) -> List[SearchHistoryRecord]:
        cursor = (
            self._get_collection()
            .find({})
            .sort("created_at", DESCENDING)
            .limit(max(1, int(limit)))
        )
        return [
            SearchHistoryRecord(
                id=str(doc["_id"]),
                product=doc.get("product", ""),
                location=doc.get("location", ""),
                reference_urls=doc.get("reference_urls") or [],
                results_count=doc.get("results_count", 0),
                search_query=doc.get("search_query", ""),
                created_at=doc["created_at"],
            )
            for doc in cursor
        ]


# Singleton instance
_history_repository_instance: Optional[SearchHistoryRepositoryInterface] = None


def get_search_history_repository(
    mongodb_uri: Optional[str] = None,
    database: Optional[str] = None,
    collection: Optional[str] = None,
) -> SearchHistoryRepositoryInterface:
    """
    Get the search history repository instance (singleton).

    Arguments are only used when the instance is first created.
    """
    global _history_repository_instance

    if _history_repository_instance is None:
        _history_repository_instance = MongoSearchHistoryRepository(mongodb_uri, database, collection)
        logger.info("Initialized search history repository")

    return _history_repository_instance


def reset_search_history_repository() -> None:
    """Reset the repository singleton (for testing)."""
    global _history_repository_instance
    _history_repository_instance = None
