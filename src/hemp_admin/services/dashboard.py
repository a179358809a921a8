"""Dashboard aggregates served through the cache."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from hemp_admin.domain.cache import CacheTags, CacheTTL
from hemp_admin.domain.dashboard import OrderRow
from hemp_admin.services.cache import Cache, cached_query
from hemp_admin.services.catalog import ProductRepository

_logger = logging.getLogger(__name__)

DASHBOARD_CACHE_KEY = "dashboard:overview"
DASHBOARD_TAGS = (
    CacheTags.DASHBOARD,
    CacheTags.ORDERS,
    CacheTags.PRODUCTS,
    CacheTags.ANALYTICS,
)


class DashboardRepository(Protocol):
    """Persistence interface for dashboard queries."""

    def list_orders(self) -> list[OrderRow]:
        """Return all orders, newest first."""

    def count_active_subscribers(self, since: datetime | None = None) -> int:
        """Count active newsletter subscriptions, optionally since a date."""


@dataclass
class DashboardService:
    """Builds the admin dashboard overview."""

    repository: DashboardRepository
    product_repository: ProductRepository
    cache: Cache

    async def get_overview(self, refresh: bool = False) -> dict[str, object]:
        """Return dashboard data; ``refresh`` recomputes and re-caches it."""
        if refresh:
            _logger.info("Dashboard cache bypass requested")
            overview = self._build_overview()
            self.cache.set(
                DASHBOARD_CACHE_KEY,
                overview,
                ttl_seconds=CacheTTL.MEDIUM,
                tags=DASHBOARD_TAGS,
            )
            return overview

        async def load() -> dict[str, object]:
            return self._build_overview()

        return await cached_query(
            self.cache,
            DASHBOARD_CACHE_KEY,
            load,
            ttl_seconds=CacheTTL.MEDIUM,
            tags=DASHBOARD_TAGS,
        )

    def _build_overview(self) -> dict[str, object]:
        _logger.info("Fetching fresh dashboard data from database")
        now = datetime.now(tz=UTC)
        start_30d = now - timedelta(days=30)
        start_7d = now - timedelta(days=7)

        orders = self.repository.list_orders()
        paid = [order for order in orders if order.status == "paid"]
        products = self.product_repository.list_products(limit=1000)
        low_stock = sorted(
            (
                product
                for product in products
                if product.track_inventory
                and 0 < product.stock <= product.low_stock_threshold
            ),
            key=lambda product: product.stock,
        )

        return {
            "overview": {
                "total_orders": len(orders),
                "paid_orders": len(paid),
                "processing_orders": _count_status(orders, "processing"),
                "shipped_orders": _count_status(orders, "shipped"),
                "total_revenue": sum(order.total_amount for order in paid),
                "monthly_revenue": _revenue_since(paid, start_30d),
                "weekly_revenue": _revenue_since(paid, start_7d),
                "total_products": len(products),
                "in_stock_products": sum(1 for p in products if p.stock > 0),
                "low_stock_products": sum(
                    1 for p in products if 0 < p.stock <= p.low_stock_threshold
                ),
                "out_of_stock_products": sum(1 for p in products if p.stock == 0),
                "total_newsletter_subscribers": (
                    self.repository.count_active_subscribers()
                ),
                "monthly_new_subscribers": self.repository.count_active_subscribers(
                    since=start_30d
                ),
            },
            "recent_orders": [
                {
                    "id": str(order.id),
                    "amount": order.total_amount,
                    "status": order.status,
                    "customer_email": order.customer_email,
                    "created_at": order.created_at.isoformat(),
                }
                for order in orders[:5]
            ],
            "low_stock_products": [
                {
                    "id": str(product.id),
                    "name": product.name,
                    "stock": product.stock,
                    "price": product.price,
                }
                for product in low_stock[:5]
            ],
            "generated_at": now.isoformat(),
        }


def _count_status(orders: list[OrderRow], status: str) -> int:
    return sum(1 for order in orders if order.status == status)


def _revenue_since(orders: list[OrderRow], start: datetime) -> float:
    return sum(order.total_amount for order in orders if order.created_at >= start)
