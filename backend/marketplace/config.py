"""
Configuration settings for the property marketplace backend.
"""

from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend-as-a-service
    BACKEND_TYPE: str = "memory"  # Options: "memory", "rest"
    BAAS_URL: str = ""
    BAAS_API_KEY: str = ""
    BAAS_TIMEOUT: float = 30.0
    STORAGE_PUBLIC_URL: str = "http://localhost:8000"

    # Data Settings
    BASE_DIR: Path = Path(__file__).resolve().parent
    SEED_DATA_PATH: Path = BASE_DIR / "data" / "seed.json"

    # Local storage (one namespace per client session, empty = memory only)
    LOCAL_STORAGE_DIR: str = ""

    # Favorites / comparison
    COMPARISON_MAX_ITEMS: int = 4

    # Geo targeting
    DEFAULT_AD_RADIUS_KM: float = 50.0
    LOCATION_CACHE_SECONDS: int = 3600
    LOCATION_TIMEOUT_SECONDS: float = 10.0
    LOCATION_MAX_AGE_SECONDS: int = 300

    # Sessions
    SESSION_TIMEOUT_HOURS: int = 24

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
