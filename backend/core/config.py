"""
Centralized configuration for the Name Match backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables."""

    # Gemini API - the only credential the service needs.
    # API_KEY is accepted for deployments that already export it.
    GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", os.environ.get("API_KEY", ""))
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    GEMINI_MODEL: str = "gemini-flash-lite-latest"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
