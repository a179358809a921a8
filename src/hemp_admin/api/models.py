"""Request bodies for admin endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field

from hemp_admin.domain.catalog import ProductDraft


class RevalidateRequest(BaseModel):
    """Revalidation request for a path and/or tags."""

    path: str | None = None
    tag: str | None = None
    tags: list[str] | None = None
    secret: str | None = None


class InventoryAdjustRequest(BaseModel):
    """Stock adjustment for a single product."""

    product_id: UUID
    adjustment_type: str
    quantity: int
    notes: str = Field(default="", max_length=500)


class ProductRequest(BaseModel):
    """Product fields accepted on create and update."""

    name: str = Field(min_length=1, max_length=200)
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    low_stock_threshold: int = Field(default=10, ge=0)
    track_inventory: bool = True
    category_id: UUID | None = None

    def to_draft(self) -> ProductDraft:
        return ProductDraft(
            name=self.name,
            price=self.price,
            stock=self.stock,
            low_stock_threshold=self.low_stock_threshold,
            track_inventory=self.track_inventory,
            category_id=self.category_id,
        )
