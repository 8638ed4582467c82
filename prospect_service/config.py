"""
Prospect Service Configuration Module

Centralized configuration management with Pydantic validation.
Service-level settings (environment, CORS, stores) are validated at startup;
provider keys, models and scoring constants live in src.common.config.Config.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class ServiceSettings(BaseSettings):
    """
    Prospect service configuration with validation.

    All settings can be overridden via environment variables.
    """

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === CORS ===
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins"
    )

    # === Redis (search cache + pending reveals) ===
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    # === MongoDB (search history) ===
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    mongo_db_name: str = Field(
        default="prospecting",
        description="MongoDB database name"
    )
    history_collection: str = Field(
        default="search_history",
        description="Collection holding search history rows"
    )
    default_history_limit: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Rows returned by GET /api/history without ?limit"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("mongodb_uri")
    @classmethod
    def validate_mongodb_uri(cls, v: str) -> str:
        # empty disables search history
        if v and not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(f"Invalid MongoDB URI: {v}")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError(f"Invalid Redis URL: {v}")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_production_config(self) -> List[str]:
        """Warnings for settings unsuitable in production."""
        issues = []
        if self.is_production:
            if not self.cors_origins:
                issues.append("WARNING: CORS_ORIGINS not configured")
            if not self.mongodb_uri:
                issues.append("WARNING: MONGODB_URI empty, search history disabled")
            elif "localhost" in self.mongodb_uri:
                issues.append("WARNING: Using localhost MongoDB in production")
            if "localhost" in self.redis_url:
                issues.append("WARNING: Using localhost Redis in production")
        return issues

    class Config:
        env_prefix = ""  # No prefix, use exact env var names
        case_sensitive = False


@lru_cache()
def get_settings() -> ServiceSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached; tests call get_settings.cache_clear().
    """
    return ServiceSettings()


def validate_config_on_startup() -> None:
    """
    Validate configuration at application startup.

    Raises ValueError if settings cannot be loaded. Logs warnings for
    non-critical issues, including missing provider keys.
    """
    from src.common.config import Config

    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        logger.warning(issue)

    try:
        Config.validate()
    except ValueError as e:
        # searches needing the missing provider answer 503 api_configuration_error
        logger.warning(str(e))

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  mongodb_uri={'*****' if 'localhost' not in settings.mongodb_uri else settings.mongodb_uri}")
    logger.info(f"  providers={Config.summary()}")
