"""
FastAPI service for CGR International B2B prospecting.

Exposes enterprise search, market brainstorming, competitor analysis and
identification, contact search and reveal, plus cache/history admin routes.
"""

import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.common.repositories import get_cache_store

from . import __version__
from .config import get_settings, validate_config_on_startup
from .errors import install_error_handlers
from .models import HealthResponse
from .routes import (
    admin_router,
    competitor_identification_router,
    contacts_router,
    searches_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Validate configuration at startup
validate_config_on_startup()

settings = get_settings()

app = FastAPI(title="CGR Prospector", version=__version__)

if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

install_error_handlers(app)

app.include_router(searches_router)
app.include_router(competitor_identification_router)
app.include_router(contacts_router)
app.include_router(admin_router)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Liveness only: Redis and MongoDB are not probed.
    """
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        version=__version__,
        timestamp=datetime.utcnow(),
    )


@app.on_event("shutdown")
async def close_cache():
    """Release the Redis connection pool."""
    cache = get_cache_store(settings.redis_url)
    close = getattr(cache, "close", None)
    if close is not None:
        await close()
        logger.info("Cache connection closed")
