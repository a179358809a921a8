"""Shared test fixtures."""

import fnmatch
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hemp_admin.adapters.lru_cache_backend import LruCacheBackend
from hemp_admin.adapters.storefront_client import StorefrontClient
from hemp_admin.config import Settings
from hemp_admin.containers import AppContainer
from hemp_admin.domain.catalog import InventoryMovement, Product, ProductDraft
from hemp_admin.domain.dashboard import OrderRow
from hemp_admin.services.cache import CacheSweeper, MemoryCache
from hemp_admin.services.catalog import (
    CatalogService,
    ProductNotFoundError,
    ProductRepository,
)
from hemp_admin.services.dashboard import DashboardRepository, DashboardService
from hemp_admin.services.page_cache import PageCacheHandler
from hemp_admin.services.revalidation import RevalidationService
from hemp_admin.services.serverless_cache import ServerlessCache


@dataclass
class FakeClock:
    """Manually advanced clock for expiry tests."""

    now: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class InMemoryProductRepository(ProductRepository):
    """In-memory product repository for tests."""

    products: dict[UUID, Product] = field(default_factory=dict)
    movements: list[InventoryMovement] = field(default_factory=list)
    ordered: set[UUID] = field(default_factory=set)
    list_calls: int = 0
    low_stock_calls: int = 0
    fail_movements: bool = False

    def add(self, name: str, stock: int, **kwargs: object) -> Product:
        product = Product(id=uuid4(), name=name, price=25.0, stock=stock, **kwargs)
        self.products[product.id] = product
        return product

    def list_products(self, limit: int) -> list[Product]:
        self.list_calls += 1
        return sorted(self.products.values(), key=lambda p: p.name)[:limit]

    def list_low_stock(self, limit: int) -> list[Product]:
        self.low_stock_calls += 1
        low = [
            product
            for product in self.products.values()
            if product.track_inventory and product.stock <= product.low_stock_threshold
        ]
        return sorted(low, key=lambda p: (p.stock, p.name))[:limit]

    def get_product(self, product_id: UUID) -> Product | None:
        return self.products.get(product_id)

    def create_product(self, draft: ProductDraft) -> Product:
        product = _from_draft(uuid4(), draft)
        self.products[product.id] = product
        return product

    def update_product(self, product_id: UUID, draft: ProductDraft) -> Product:
        if product_id not in self.products:
            raise ProductNotFoundError(str(product_id))
        product = _from_draft(product_id, draft)
        self.products[product_id] = product
        return product

    def delete_product(self, product_id: UUID) -> None:
        self.products.pop(product_id, None)

    def count_order_items(self, product_id: UUID) -> int:
        return 1 if product_id in self.ordered else 0

    def update_stock(self, product_id: UUID, stock: int) -> Product:
        current = self.products.get(product_id)
        if current is None:
            raise ProductNotFoundError(str(product_id))
        updated = replace(current, stock=stock)
        self.products[product_id] = updated
        return updated

    def create_movement(self, movement: InventoryMovement) -> None:
        if self.fail_movements:
            raise RuntimeError("inventory_logs insert failed")
        self.movements.append(movement)


def _from_draft(product_id: UUID, draft: ProductDraft) -> Product:
    return Product(
        id=product_id,
        name=draft.name,
        price=draft.price,
        stock=draft.stock,
        low_stock_threshold=draft.low_stock_threshold,
        track_inventory=draft.track_inventory,
        category_id=draft.category_id,
    )


@dataclass
class InMemoryDashboardRepository(DashboardRepository):
    """In-memory dashboard repository for tests."""

    orders: list[OrderRow] = field(default_factory=list)
    subscribed_at: list[datetime] = field(default_factory=list)
    order_calls: int = 0

    def list_orders(self) -> list[OrderRow]:
        self.order_calls += 1
        return sorted(self.orders, key=lambda o: o.created_at, reverse=True)

    def count_active_subscribers(self, since: datetime | None = None) -> int:
        if since is None:
            return len(self.subscribed_at)
        return sum(1 for moment in self.subscribed_at if moment >= since)


@dataclass
class FakeStorefrontClient(StorefrontClient):
    """Fake storefront client that records payloads."""

    payloads: list[dict[str, object]] = field(default_factory=list)
    fail: bool = False

    async def revalidate(self, payload: dict[str, object]) -> dict[str, object]:
        if self.fail:
            raise RuntimeError("storefront unavailable")
        self.payloads.append(payload)
        return {"revalidated": True}


@dataclass
class FakePipeline:
    """Queues commands and replays them against the owning client."""

    client: "FakeRedis | UnreachableRedis"
    commands: list[tuple[str, tuple[object, ...], dict[str, object]]] = field(
        default_factory=list
    )

    def set(self, *args: object, **kwargs: object) -> "FakePipeline":
        self.commands.append(("set", args, kwargs))
        return self

    def hset(self, *args: object) -> "FakePipeline":
        self.commands.append(("hset", args, {}))
        return self

    def exists(self, *args: object) -> "FakePipeline":
        self.commands.append(("exists", args, {}))
        return self

    async def execute(self) -> list[object]:
        return [
            await getattr(self.client, name)(*args, **kwargs)
            for name, args, kwargs in self.commands
        ]


@dataclass
class FakeRedis:
    """Subset of the async Redis client backed by dicts."""

    strings: dict[str, str] = field(default_factory=dict)
    expiries: dict[str, int | None] = field(default_factory=dict)
    hashes: dict[str, dict[str, str]] = field(default_factory=dict)
    transactions: list[bool] = field(default_factory=list)
    closed: bool = False

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        self.transactions.append(transaction)
        return FakePipeline(self)

    async def get(self, key: str) -> str | None:
        return self.strings.get(key)

    async def set(self, key: str, value: str, px: int | None = None) -> bool:
        self.strings[key] = value
        self.expiries[key] = px
        return True

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.strings)

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.strings.pop(key, None) is not None)

    async def hset(self, name: str, key: str, value: str) -> int:
        self.hashes.setdefault(name, {})[key] = value
        return 1

    async def hdel(self, name: str, *keys: str) -> int:
        bucket = self.hashes.get(name, {})
        return sum(1 for key in keys if bucket.pop(key, None) is not None)

    async def hgetall(self, name: str) -> dict[str, str]:
        return dict(self.hashes.get(name, {}))

    async def hkeys(self, name: str) -> list[str]:
        return list(self.hashes.get(name, {}))

    async def aclose(self) -> None:
        self.closed = True

    def expire_now(self, key: str) -> None:
        """Drop a string key the way Redis does when its ``px`` elapses."""
        self.strings.pop(key, None)
        self.expiries.pop(key, None)

    def keys_matching(self, pattern: str) -> list[str]:
        return [key for key in self.strings if fnmatch.fnmatch(key, pattern)]


class UnreachableRedis:
    """Redis client whose every command fails to connect."""

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    def __getattr__(self, name: str):  # type: ignore[no-untyped-def]
        async def _fail(*_args, **_kwargs):  # type: ignore[no-untyped-def]
            raise RedisConnectionError("Connection refused")

        return _fail


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        environment="test",
        revalidation_secret="webhook-secret",
        storefront_revalidation_secret="storefront-secret",
    )


@pytest.fixture
def product_repository() -> InMemoryProductRepository:
    return InMemoryProductRepository()


@pytest.fixture
def storefront_client() -> FakeStorefrontClient:
    return FakeStorefrontClient()


@pytest.fixture
def container(
    settings: Settings,
    product_repository: InMemoryProductRepository,
    storefront_client: FakeStorefrontClient,
) -> AppContainer:
    cache = MemoryCache()
    serverless_cache = ServerlessCache()
    page_cache = PageCacheHandler(LruCacheBackend(capacity=10))
    revalidation_service = RevalidationService(
        client=storefront_client,
        secret=settings.storefront_revalidation_secret,
    )
    catalog_service = CatalogService(
        repository=product_repository,
        cache=cache,
        page_cache=page_cache,
        revalidation_service=revalidation_service,
        request_cache=serverless_cache,
    )
    dashboard_service = DashboardService(
        repository=InMemoryDashboardRepository(),
        product_repository=product_repository,
        cache=cache,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        cache=cache,
        cache_sweeper=CacheSweeper(cache, interval_seconds=0),
        serverless_cache=serverless_cache,
        page_cache=page_cache,
        catalog_service=catalog_service,
        dashboard_service=dashboard_service,
        revalidation_service=revalidation_service,
        close_resources=close_resources,
    )
