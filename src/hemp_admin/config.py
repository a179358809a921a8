"""Application configuration."""

import os
from dataclasses import dataclass
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

CacheBackendName = Literal["local", "remote"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    environment: str = _ENVIRONMENT
    log_level: str = "INFO"
    revalidation_secret: str | None = None
    storefront_url: str = "http://localhost:3000"
    storefront_revalidation_secret: str | None = None

    redis_url: str | None = None
    cache_backend: CacheBackendName | None = None
    cache_key_prefix: str = "hempadmin:"
    cache_timeout_seconds: float = 5.0
    cache_max_retries: int = 3
    cache_retry_delay_seconds: float = 0.1
    cache_local_capacity: int = 1000
    cache_local_max_item_bytes: int = 10 * 1024 * 1024
    cache_default_ttl_seconds: float = 300
    cache_cleanup_interval_seconds: float = 600

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


@dataclass(frozen=True)
class CacheConfig:
    """Page cache backend options resolved once at startup."""

    backend: CacheBackendName = "local"
    local_capacity: int = 1000
    local_max_item_bytes: int = 10 * 1024 * 1024
    remote_url: str | None = None
    remote_key_prefix: str = "hempadmin:"
    remote_timeout_seconds: float = 5.0
    remote_max_retries: int = 3
    remote_retry_delay_seconds: float = 0.1


def resolve_cache_config(settings: Settings) -> CacheConfig:
    """Pick the page cache backend from the deployment settings.

    Redis is used in production when a URL is configured; everything else
    gets the local LRU store. ``cache_backend`` overrides the choice, but a
    remote backend without a URL still falls back to local.
    """
    backend: CacheBackendName = settings.cache_backend or (
        "remote"
        if settings.environment == "production" and settings.redis_url
        else "local"
    )
    if backend == "remote" and not settings.redis_url:
        backend = "local"
    return CacheConfig(
        backend=backend,
        local_capacity=settings.cache_local_capacity,
        local_max_item_bytes=settings.cache_local_max_item_bytes,
        remote_url=settings.redis_url,
        remote_key_prefix=settings.cache_key_prefix,
        remote_timeout_seconds=settings.cache_timeout_seconds,
        remote_max_retries=settings.cache_max_retries,
        remote_retry_delay_seconds=settings.cache_retry_delay_seconds,
    )
