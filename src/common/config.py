"""
Configuration loader for the prospecting pipeline.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class Config:
    """
    Centralized configuration for all prospecting components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== Provider APIs =====
    PERPLEXITY_API_KEY: str = os.getenv("PERPLEXITY_API_KEY", "")
    PERPLEXITY_BASE_URL: str = os.getenv("PERPLEXITY_BASE_URL", "https://api.perplexity.ai")
    APOLLO_API_KEY: str = os.getenv("APOLLO_API_KEY", "")
    APOLLO_BASE_URL: str = os.getenv("APOLLO_BASE_URL", "https://api.apollo.io/api/v1")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

    # Public URL of this service, used for the Apollo webhook callback
    APP_URL: str = os.getenv("APP_URL", "http://localhost:8000")

    # ===== Models =====
    ENTERPRISE_MODEL: str = os.getenv("ENTERPRISE_MODEL", "sonar-deep-research")
    BRAINSTORMING_MODEL: str = os.getenv("BRAINSTORMING_MODEL", "sonar")
    COMPETITOR_MODEL: str = os.getenv("COMPETITOR_MODEL", "sonar")
    IDENTIFICATION_MODEL: str = os.getenv("IDENTIFICATION_MODEL", "sonar")
    PITCH_MODEL: str = os.getenv("PITCH_MODEL", "gpt-4o-mini")

    ENTERPRISE_TEMPERATURE: float = _float("ENTERPRISE_TEMPERATURE", 0.1)
    ENTERPRISE_MAX_TOKENS: int = _int("ENTERPRISE_MAX_TOKENS", 8000)
    BRAINSTORMING_TEMPERATURE: float = _float("BRAINSTORMING_TEMPERATURE", 0.4)
    BRAINSTORMING_MAX_TOKENS: int = _int("BRAINSTORMING_MAX_TOKENS", 4000)
    COMPETITOR_TEMPERATURE: float = _float("COMPETITOR_TEMPERATURE", 0.3)
    COMPETITOR_MAX_TOKENS: int = _int("COMPETITOR_MAX_TOKENS", 4000)
    IDENTIFICATION_TEMPERATURE: float = _float("IDENTIFICATION_TEMPERATURE", 0.2)
    IDENTIFICATION_MAX_TOKENS: int = _int("IDENTIFICATION_MAX_TOKENS", 7000)
    PITCH_TEMPERATURE: float = _float("PITCH_TEMPERATURE", 0.7)
    PITCH_MAX_TOKENS: int = _int("PITCH_MAX_TOKENS", 200)
    PITCH_TIMEOUT: float = _float("PITCH_TIMEOUT", 30)
    # all LLM pitches of one contact search
    PITCH_BUDGET_SECONDS: float = _float("PITCH_BUDGET_SECONDS", 60)

    # "template" or "llm"
    CONTACT_PITCH_MODE: str = os.getenv("CONTACT_PITCH_MODE", "template").lower()

    # ===== Timeouts (seconds, whole orchestrator run) =====
    ENTERPRISE_TIMEOUT: float = _float("ENTERPRISE_TIMEOUT", 180)
    BRAINSTORMING_TIMEOUT: float = _float("BRAINSTORMING_TIMEOUT", 150)
    COMPETITOR_TIMEOUT: float = _float("COMPETITOR_TIMEOUT", 120)
    IDENTIFICATION_TIMEOUT: float = _float("IDENTIFICATION_TIMEOUT", 180)
    IDENTIFICATION_MULTI_TIMEOUT: float = _float("IDENTIFICATION_MULTI_TIMEOUT", 300)
    CONTACT_TIMEOUT: float = _float("CONTACT_TIMEOUT", 120)
    APOLLO_REQUEST_TIMEOUT: float = _float("APOLLO_REQUEST_TIMEOUT", 30)

    # ===== Cache TTLs (seconds) =====
    ENTERPRISE_CACHE_TTL: int = _int("ENTERPRISE_CACHE_TTL", 30 * 24 * 3600)
    BRAINSTORMING_CACHE_TTL: int = _int("BRAINSTORMING_CACHE_TTL", 24 * 3600)
    COMPETITOR_CACHE_TTL: int = _int("COMPETITOR_CACHE_TTL", 24 * 3600)
    IDENTIFICATION_CACHE_TTL: int = _int("IDENTIFICATION_CACHE_TTL", 48 * 3600)
    CONTACT_CACHE_TTL: int = _int("CONTACT_CACHE_TTL", 12 * 3600)
    REVEAL_TTL: int = _int("REVEAL_TTL", 3600)

    # ===== Enterprise scoring (defaults are the tuned production values) =====
    SCORE_GOOD_THRESHOLD: float = _float("SCORE_GOOD_THRESHOLD", 3.0)
    SCORE_BACKFILL_RATIO: float = _float("SCORE_BACKFILL_RATIO", 0.7)
    SCORE_BACKFILL_MIN: float = _float("SCORE_BACKFILL_MIN", 2.0)
    SCORE_BACKFILL_MAX: float = _float("SCORE_BACKFILL_MAX", 3.0)
    SCORE_DISTRIBUTOR_PENALTY: float = _float("SCORE_DISTRIBUTOR_PENALTY", 1.5)
    SCORE_RND_BONUS: float = _float("SCORE_RND_BONUS", 0.5)
    SCORE_WEBSITE_BONUS: float = _float("SCORE_WEBSITE_BONUS", 0.3)
    SCORE_PROPOSED_PRODUCT_UNIT: float = _float("SCORE_PROPOSED_PRODUCT_UNIT", 0.8)
    SCORE_OWN_PRODUCT_UNIT: float = _float("SCORE_OWN_PRODUCT_UNIT", 0.3)

    # ===== Contacts =====
    RELEVANCE_THRESHOLD: float = _float("RELEVANCE_THRESHOLD", 0.7)

    # ===== Brainstorming =====
    MIN_JUSTIFICATION_CHARS: int = _int("MIN_JUSTIFICATION_CHARS", 80)

    # ===== Batch fan-out =====
    BATCH_MAX_CONCURRENCY: int = _int("BATCH_MAX_CONCURRENCY", 1)
    BATCH_DELAY_SECONDS: float = _float("BATCH_DELAY_SECONDS", 1.0)

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing.
        """
        required_settings = {
            "PERPLEXITY_API_KEY": cls.PERPLEXITY_API_KEY,
            "APOLLO_API_KEY": cls.APOLLO_API_KEY,
        }
        if cls.CONTACT_PITCH_MODE == "llm":
            required_settings["OPENAI_API_KEY"] = cls.OPENAI_API_KEY

        missing = [name for name, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

        if cls.CONTACT_PITCH_MODE not in ("template", "llm"):
            raise ValueError("CONTACT_PITCH_MODE must be 'template' or 'llm'")

    @classmethod
    def summary(cls) -> Dict[str, Any]:
        """Return configuration summary (without secrets)."""
        return {
            "perplexity_configured": bool(cls.PERPLEXITY_API_KEY),
            "apollo_configured": bool(cls.APOLLO_API_KEY),
            "openai_configured": bool(cls.OPENAI_API_KEY),
            "enterprise_model": cls.ENTERPRISE_MODEL,
            "brainstorming_model": cls.BRAINSTORMING_MODEL,
            "contact_pitch_mode": cls.CONTACT_PITCH_MODE,
            "relevance_threshold": cls.RELEVANCE_THRESHOLD,
            "score_good_threshold": cls.SCORE_GOOD_THRESHOLD,
            "batch_max_concurrency": cls.BATCH_MAX_CONCURRENCY,
        }
