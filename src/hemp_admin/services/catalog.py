"""Product catalog and inventory service with cache invalidation."""

import logging
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from hemp_admin.domain.cache import CacheTags, CacheTTL
from hemp_admin.domain.catalog import (
    ADJUSTMENT_TYPES,
    InventoryMovement,
    Product,
    ProductDraft,
)
from hemp_admin.services.cache import Cache, cached_query
from hemp_admin.services.page_cache import PageCacheHandler
from hemp_admin.services.revalidation import RevalidationService
from hemp_admin.services.serverless_cache import (
    ServerlessCache,
    fetch_with_cache,
    generate_cache_key,
)

_logger = logging.getLogger(__name__)

_INVALIDATED_BY_STOCK_CHANGE = (
    CacheTags.PRODUCTS,
    CacheTags.INVENTORY,
    CacheTags.DASHBOARD,
)
_INVALIDATED_BY_PRODUCT_CHANGE = (*_INVALIDATED_BY_STOCK_CHANGE, CacheTags.CATEGORIES)


class ProductNotFoundError(LookupError):
    """Raised when a product id does not exist."""


class InventoryAdjustmentError(ValueError):
    """Raised when an inventory adjustment request is invalid."""


class ProductInUseError(ValueError):
    """Raised when deleting a product that appears in orders."""


class ProductRepository(Protocol):
    """Persistence interface for products and inventory movements."""

    def list_products(self, limit: int) -> list[Product]:
        """Return products ordered by name."""

    def list_low_stock(self, limit: int) -> list[Product]:
        """Return tracked products at or below their threshold, lowest first."""

    def get_product(self, product_id: UUID) -> Product | None:
        """Return a product by id."""

    def create_product(self, draft: ProductDraft) -> Product:
        """Insert a product and return it."""

    def update_product(self, product_id: UUID, draft: ProductDraft) -> Product:
        """Replace a product's editable fields and return the result."""

    def delete_product(self, product_id: UUID) -> None:
        """Delete a product."""

    def count_order_items(self, product_id: UUID) -> int:
        """Return how many order lines reference the product."""

    def update_stock(self, product_id: UUID, stock: int) -> Product:
        """Persist a new stock level and return the updated product."""

    def create_movement(self, movement: InventoryMovement) -> None:
        """Record an inventory movement."""


@dataclass
class CatalogService:
    """Reads products through the cache and invalidates it on writes.

    Every write drops the affected tags once the database row has changed,
    even if a follow-up step such as logging the inventory movement fails.
    """

    repository: ProductRepository
    cache: Cache
    page_cache: PageCacheHandler
    revalidation_service: RevalidationService
    request_cache: ServerlessCache = field(default_factory=ServerlessCache)

    async def list_products(self, limit: int = 50) -> list[Product]:
        """Return products, served from cache when fresh."""

        async def load() -> list[Product]:
            return self.repository.list_products(limit)

        return await cached_query(
            self.cache,
            f"products:list:{limit}",
            load,
            ttl_seconds=CacheTTL.MEDIUM,
            tags=[CacheTags.PRODUCTS],
        )

    async def get_product(self, product_id: UUID) -> Product:
        """Return a single product, served from cache when fresh."""

        async def load() -> Product:
            product = self.repository.get_product(product_id)
            if product is None:
                raise ProductNotFoundError(str(product_id))
            return product

        return await cached_query(
            self.cache,
            f"products:{product_id}",
            load,
            ttl_seconds=CacheTTL.MEDIUM,
            tags=[CacheTags.PRODUCTS],
        )

    async def list_low_stock(self, limit: int = 20) -> list[Product]:
        """Return tracked products at or below their low-stock threshold."""

        async def load() -> list[Product]:
            return self.repository.list_low_stock(limit)

        return await fetch_with_cache(
            self.request_cache,
            generate_cache_key("inventory", "low-stock", limit),
            load,
            ttl_seconds=CacheTTL.SHORT,
        )

    async def create_product(self, draft: ProductDraft) -> Product:
        """Create a product and log its initial stock."""
        product = self.repository.create_product(draft)
        try:
            self.repository.create_movement(
                InventoryMovement(
                    product_id=product.id,
                    change_type="stock_in",
                    quantity_change=product.stock,
                    previous_stock=0,
                    new_stock=product.stock,
                    notes="Initial stock",
                )
            )
        finally:
            await self.invalidate(_INVALIDATED_BY_PRODUCT_CHANGE)
        _logger.info("Product created: %s", product.id)
        await self.revalidation_service.trigger("product", str(product.id))
        return product

    async def update_product(self, product_id: UUID, draft: ProductDraft) -> Product:
        """Replace a product's fields, logging any stock change."""
        current = self.repository.get_product(product_id)
        if current is None:
            raise ProductNotFoundError(str(product_id))
        updated = self.repository.update_product(product_id, draft)
        try:
            if current.stock != updated.stock:
                change = updated.stock - current.stock
                self.repository.create_movement(
                    InventoryMovement(
                        product_id=product_id,
                        change_type="stock_in" if change > 0 else "stock_out",
                        quantity_change=change,
                        previous_stock=current.stock,
                        new_stock=updated.stock,
                        notes="Manual adjustment via admin panel",
                    )
                )
        finally:
            await self.invalidate(_INVALIDATED_BY_PRODUCT_CHANGE)
        _logger.info("Product updated: %s", product_id)
        await self.revalidation_service.trigger("product", str(product_id))
        return updated

    async def delete_product(self, product_id: UUID) -> None:
        """Delete a product that has never been ordered."""
        if self.repository.get_product(product_id) is None:
            raise ProductNotFoundError(str(product_id))
        if self.repository.count_order_items(product_id) > 0:
            raise ProductInUseError("Cannot delete product that has been ordered")
        self.repository.delete_product(product_id)
        await self.invalidate(_INVALIDATED_BY_PRODUCT_CHANGE)
        _logger.info("Product deleted: %s", product_id)
        await self.revalidation_service.trigger("product", str(product_id))

    async def adjust_inventory(
        self,
        product_id: UUID,
        adjustment_type: str,
        quantity: int,
        notes: str = "",
    ) -> tuple[Product, InventoryMovement]:
        """Apply a stock adjustment and invalidate dependent caches.

        ``restock`` and ``returned`` add stock, ``sold`` and ``damaged``
        remove it (never below zero) and ``adjustment`` sets it directly.
        """
        if adjustment_type not in ADJUSTMENT_TYPES:
            raise InventoryAdjustmentError("Invalid adjustment type")
        if quantity == 0:
            raise InventoryAdjustmentError("Invalid quantity")
        product = self.repository.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if not product.track_inventory:
            raise InventoryAdjustmentError("Product does not track inventory")

        new_stock, change = _apply_adjustment(product.stock, adjustment_type, quantity)
        if new_stock < 0:
            raise InventoryAdjustmentError("Insufficient stock for this adjustment")

        updated = self.repository.update_stock(product_id, new_stock)
        movement = InventoryMovement(
            product_id=product_id,
            change_type=adjustment_type,
            quantity_change=change,
            previous_stock=product.stock,
            new_stock=new_stock,
            notes=notes,
        )
        try:
            self.repository.create_movement(movement)
        finally:
            await self.invalidate(_INVALIDATED_BY_STOCK_CHANGE)
        _logger.info(
            "Inventory adjusted: product=%s %s -> %s",
            product_id,
            product.stock,
            new_stock,
        )
        await self.revalidation_service.trigger("product", str(product_id))
        return updated, movement

    async def invalidate(self, tags: tuple[str, ...] | list[str]) -> None:
        """Drop cached data and cached pages for the given tags."""
        self.cache.invalidate_by_tags(tags)
        if CacheTags.INVENTORY in tags:
            self.request_cache.clear()
        for tag in tags:
            await self.page_cache.revalidate_tag(tag)


def _apply_adjustment(
    stock: int, adjustment_type: str, quantity: int
) -> tuple[int, int]:
    if adjustment_type in {"restock", "returned"}:
        return stock + quantity, quantity
    if adjustment_type in {"sold", "damaged"}:
        return max(0, stock - quantity), -quantity
    return quantity, quantity - stock
