"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from hemp_admin.adapters.lru_cache_backend import LruCacheBackend
from hemp_admin.adapters.redis_cache_backend import RedisCacheBackend
from hemp_admin.adapters.storefront_client import HttpxStorefrontClient
from hemp_admin.adapters.supabase_dashboard_repository import (
    SupabaseDashboardRepository,
)
from hemp_admin.adapters.supabase_product_repository import SupabaseProductRepository
from hemp_admin.config import CacheConfig, Settings, resolve_cache_config
from hemp_admin.services.cache import CacheSweeper, MemoryCache
from hemp_admin.services.catalog import CatalogService
from hemp_admin.services.dashboard import DashboardService
from hemp_admin.services.page_cache import CacheBackend, PageCacheHandler
from hemp_admin.services.revalidation import RevalidationService
from hemp_admin.services.serverless_cache import ServerlessCache

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    cache: MemoryCache
    cache_sweeper: CacheSweeper
    serverless_cache: ServerlessCache
    page_cache: PageCacheHandler
    catalog_service: CatalogService
    dashboard_service: DashboardService
    revalidation_service: RevalidationService
    close_resources: Callable[[], Awaitable[None]]


def build_cache_backend(config: CacheConfig) -> CacheBackend:
    """Create the page cache backend named by the resolved config."""
    if config.backend == "remote":
        _logger.info("Using Redis page cache backend")
        return RedisCacheBackend.create(config)
    _logger.info("Using LRU page cache backend")
    return LruCacheBackend(
        capacity=config.local_capacity,
        max_item_size_bytes=config.local_max_item_bytes,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    cache = MemoryCache(default_ttl_seconds=resolved_settings.cache_default_ttl_seconds)
    cache_sweeper = CacheSweeper(
        cache, interval_seconds=resolved_settings.cache_cleanup_interval_seconds
    )
    serverless_cache = ServerlessCache(
        default_ttl_seconds=resolved_settings.cache_default_ttl_seconds
    )
    backend = build_cache_backend(resolve_cache_config(resolved_settings))
    page_cache = PageCacheHandler(backend)
    storefront_client = HttpxStorefrontClient.create(resolved_settings.storefront_url)
    revalidation_service = RevalidationService(
        client=storefront_client,
        secret=resolved_settings.storefront_revalidation_secret,
    )
    product_repository = SupabaseProductRepository(supabase_client)
    catalog_service = CatalogService(
        repository=product_repository,
        cache=cache,
        page_cache=page_cache,
        revalidation_service=revalidation_service,
        request_cache=serverless_cache,
    )
    dashboard_service = DashboardService(
        repository=SupabaseDashboardRepository(supabase_client),
        product_repository=product_repository,
        cache=cache,
    )

    async def close_resources() -> None:
        await cache_sweeper.stop()
        await storefront_client.close()
        if isinstance(backend, RedisCacheBackend):
            await backend.close()

    return AppContainer(
        settings=resolved_settings,
        cache=cache,
        cache_sweeper=cache_sweeper,
        serverless_cache=serverless_cache,
        page_cache=page_cache,
        catalog_service=catalog_service,
        dashboard_service=dashboard_service,
        revalidation_service=revalidation_service,
        close_resources=close_resources,
    )
