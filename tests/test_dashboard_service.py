"""Tests for the dashboard service."""

import asyncio
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from hemp_admin.domain.dashboard import OrderRow
from hemp_admin.services.cache import MemoryCache
from hemp_admin.services.dashboard import DASHBOARD_CACHE_KEY, DashboardService
from tests.conftest import InMemoryDashboardRepository, InMemoryProductRepository


def _service() -> tuple[DashboardService, InMemoryDashboardRepository, MemoryCache]:
    now = datetime.now(tz=UTC)
    repository = InMemoryDashboardRepository(
        orders=[
            OrderRow(uuid4(), "paid", 100.0, now - timedelta(days=2), "a@x.com"),
            OrderRow(uuid4(), "paid", 50.0, now - timedelta(days=20)),
            OrderRow(uuid4(), "paid", 30.0, now - timedelta(days=90)),
            OrderRow(uuid4(), "shipped", 70.0, now - timedelta(days=1)),
            OrderRow(uuid4(), "processing", 10.0, now),
        ],
        subscribed_at=[now - timedelta(days=3), now - timedelta(days=60)],
    )
    products = InMemoryProductRepository()
    products.add("Tee", stock=3)
    products.add("Hoodie", stock=0)
    products.add("Cap", stock=40)
    cache = MemoryCache()
    return DashboardService(repository, products, cache), repository, cache


def test_overview_aggregates_orders_and_products() -> None:
    service, _, _ = _service()

    data = asyncio.run(service.get_overview())
    overview = data["overview"]

    assert overview["total_orders"] == 5
    assert overview["paid_orders"] == 3
    assert overview["shipped_orders"] == 1
    assert overview["processing_orders"] == 1
    assert overview["total_revenue"] == 180.0
    assert overview["monthly_revenue"] == 150.0
    assert overview["weekly_revenue"] == 100.0
    assert overview["total_products"] == 3
    assert overview["in_stock_products"] == 2
    assert overview["low_stock_products"] == 1
    assert overview["out_of_stock_products"] == 1
    assert overview["total_newsletter_subscribers"] == 2
    assert overview["monthly_new_subscribers"] == 1
    assert [item["name"] for item in data["low_stock_products"]] == ["Tee"]
    assert data["recent_orders"][0]["status"] == "processing"


def test_overview_is_cached_with_dashboard_tags() -> None:
    service, repository, cache = _service()

    asyncio.run(service.get_overview())
    asyncio.run(service.get_overview())
    assert repository.order_calls == 1

    cache.invalidate_by_tags(["orders"])
    assert cache.get(DASHBOARD_CACHE_KEY) is None


def test_refresh_bypasses_and_repopulates_cache() -> None:
    service, repository, cache = _service()
    asyncio.run(service.get_overview())

    refreshed = asyncio.run(service.get_overview(refresh=True))

    assert repository.order_calls == 2
    assert cache.get(DASHBOARD_CACHE_KEY) is refreshed
