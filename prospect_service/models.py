"""
Response models for service-level endpoints.

Search endpoints return the orchestrator payload dicts directly.
"""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    version: str
    timestamp: datetime
