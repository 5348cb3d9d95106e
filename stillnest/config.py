"""
Runtime configuration helpers for the Stillnest client data layer.

Loads settings from the process environment and the .env file located in the
project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    app_name: str = Field(default="Stillnest", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Backend the client talks to
    api_base_url: str = Field(default="http://localhost:8000", alias="API_BASE_URL")
    api_token: str | None = Field(default=None, alias="API_TOKEN")
    request_timeout: float = Field(default=10.0, alias="REQUEST_TIMEOUT")

    # Connectivity probing (seconds)
    health_path: str = Field(default="/api/health", alias="HEALTH_PATH")
    probe_timeout: float = Field(default=5.0, alias="PROBE_TIMEOUT")
    connectivity_check_interval: float = Field(default=30.0, alias="CONNECTIVITY_CHECK_INTERVAL")

    # Caches (seconds)
    cache_namespace: str = Field(default="stillnest_cache", alias="CACHE_NAMESPACE")
    cache_sweep_interval: float = Field(default=60.0, alias="CACHE_SWEEP_INTERVAL")
    photo_cache_ttl: float = Field(default=15 * 60, alias="PHOTO_CACHE_TTL")
    photo_cache_max_size: int = Field(default=200, alias="PHOTO_CACHE_MAX_SIZE")
    user_cache_ttl: float = Field(default=10 * 60, alias="USER_CACHE_TTL")
    user_cache_max_size: int = Field(default=50, alias="USER_CACHE_MAX_SIZE")
    feed_cache_ttl: float = Field(default=5 * 60, alias="FEED_CACHE_TTL")
    feed_cache_max_size: int = Field(default=20, alias="FEED_CACHE_MAX_SIZE")
    offline_cache_ttl: float = Field(default=7 * 24 * 60 * 60, alias="OFFLINE_CACHE_TTL")
    offline_cache_max_size: int = Field(default=500, alias="OFFLINE_CACHE_MAX_SIZE")
    loader_ttl: float = Field(default=5 * 60, alias="LOADER_TTL")

    # Durable storage backing persisted caches
    storage_database_url: str = Field(
        default="sqlite+pysqlite:///./stillnest_storage.db", alias="STORAGE_DATABASE_URL"
    )

    # Retry / pagination
    retry_max_retries: int = Field(default=3, alias="RETRY_MAX_RETRIES")
    retry_delay: float = Field(default=1.0, alias="RETRY_DELAY")
    read_retry_attempts: int = Field(default=3, alias="READ_RETRY_ATTEMPTS")
    feed_page_size: int = Field(default=20, alias="FEED_PAGE_SIZE")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
