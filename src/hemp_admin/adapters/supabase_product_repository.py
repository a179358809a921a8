"""Supabase repository for products and inventory movements."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from hemp_admin.domain.catalog import InventoryMovement, Product, ProductDraft
from hemp_admin.services.catalog import ProductNotFoundError, ProductRepository

_PRODUCT_COLUMNS = (
    "id, name, price, stock, low_stock_threshold, track_inventory, category_id"
)
_LOW_STOCK_PAGE_SIZE = 200


@dataclass
class SupabaseProductRepository(ProductRepository):
    """Supabase implementation for product persistence."""

    client: Client

    def list_products(self, limit: int) -> list[Product]:
        """Return products ordered by name."""
        response = (
            self.client.table("products")
            .select(_PRODUCT_COLUMNS)
            .order("name", desc=False)
            .limit(limit)
            .execute()
        )
        return [_parse_product(row) for row in response.data or []]

    def list_low_stock(self, limit: int) -> list[Product]:
        """Return tracked products at or below their threshold, lowest first.

        PostgREST filters cannot compare two columns, so tracked products are
        paged in stock order and filtered here until ``limit`` rows match.
        """
        found: list[Product] = []
        start = 0
        while len(found) < limit:
            response = (
                self.client.table("products")
                .select(_PRODUCT_COLUMNS)
                .eq("track_inventory", True)
                .order("stock", desc=False)
                .range(start, start + _LOW_STOCK_PAGE_SIZE - 1)
                .execute()
            )
            rows = response.data or []
            for row in rows:
                product = _parse_product(row)
                if product.stock <= product.low_stock_threshold:
                    found.append(product)
            if len(rows) < _LOW_STOCK_PAGE_SIZE:
                break
            start += _LOW_STOCK_PAGE_SIZE
        return found[:limit]

    def get_product(self, product_id: UUID) -> Product | None:
        """Return a product by id."""
        response = (
            self.client.table("products")
            .select(_PRODUCT_COLUMNS)
            .eq("id", str(product_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def create_product(self, draft: ProductDraft) -> Product:
        """Insert a product row and return it."""
        response = (
            self.client.table("products").insert(_draft_payload(draft)).execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create product")
        return _parse_product(response.data[0])

    def update_product(self, product_id: UUID, draft: ProductDraft) -> Product:
        """Replace a product's editable fields."""
        payload = {
            **_draft_payload(draft),
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        response = (
            self.client.table("products")
            .update(payload)
            .eq("id", str(product_id))
            .execute()
        )
        if not response.data:
            raise ProductNotFoundError(str(product_id))
        return _parse_product(response.data[0])

    def delete_product(self, product_id: UUID) -> None:
        """Delete a product row; categories and logs cascade."""
        self.client.table("products").delete().eq("id", str(product_id)).execute()

    def count_order_items(self, product_id: UUID) -> int:
        """Count order lines that reference the product."""
        response = (
            self.client.table("order_items")
            .select("id", count="exact")
            .eq("product_id", str(product_id))
            .execute()
        )
        return response.count or 0

    def update_stock(self, product_id: UUID, stock: int) -> Product:
        """Persist a new stock level."""
        payload = {"stock": stock, "updated_at": datetime.now(tz=UTC).isoformat()}
        response = (
            self.client.table("products")
            .update(payload)
            .eq("id", str(product_id))
            .execute()
        )
        if not response.data:
            raise ProductNotFoundError(str(product_id))
        return _parse_product(response.data[0])

    def create_movement(self, movement: InventoryMovement) -> None:
        """Insert an inventory log row."""
        self.client.table("inventory_logs").insert(
            {
                "product_id": str(movement.product_id),
                "change_type": movement.change_type,
                "quantity_change": movement.quantity_change,
                "previous_stock": movement.previous_stock,
                "new_stock": movement.new_stock,
                "notes": movement.notes,
            }
        ).execute()


def _parse_product(row: dict[str, object]) -> Product:
    category_id = row.get("category_id")
    threshold = row.get("low_stock_threshold")
    return Product(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        price=float(row.get("price") or 0.0),
        stock=int(row.get("stock") or 0),
        low_stock_threshold=int(threshold) if threshold is not None else 5,
        track_inventory=bool(row.get("track_inventory", True)),
        category_id=UUID(str(category_id)) if category_id else None,
    )


def _draft_payload(draft: ProductDraft) -> dict[str, object]:
    return {
        "name": draft.name,
        "price": draft.price,
        "stock": draft.stock,
        "low_stock_threshold": draft.low_stock_threshold,
        "track_inventory": draft.track_inventory,
        "category_id": str(draft.category_id) if draft.category_id else None,
    }
