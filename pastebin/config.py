"""
Configuration module for the paste service.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis").lower()
    DEBUG: bool = _flag("DEBUG", "True")
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
    TEST_MODE: bool = _flag("TEST_MODE", "0")

    # Key generation
    KEY_LENGTH: int = int(os.getenv("KEY_LENGTH", "8"))
    KEY_MAX_ATTEMPTS: int = int(os.getenv("KEY_MAX_ATTEMPTS", "10"))

    # In-memory store
    SHARD_COUNT: int = int(os.getenv("SHARD_COUNT", "16"))

    # Background reclamation of expired pastes, 0 disables it
    PURGE_INTERVAL_SECONDS: int = int(os.getenv("PURGE_INTERVAL_SECONDS", "60"))

    DEFAULT_SYNTAX: str = os.getenv("DEFAULT_SYNTAX", "plaintext")


settings = Settings()
