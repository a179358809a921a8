"""Domain models for products and inventory."""

from dataclasses import dataclass
from uuid import UUID

ADJUSTMENT_TYPES: frozenset[str] = frozenset(
    {"restock", "sold", "damaged", "returned", "adjustment"}
)


@dataclass(frozen=True)
class Product:
    """Store product with its inventory level."""

    id: UUID
    name: str
    price: float
    stock: int
    low_stock_threshold: int = 5
    track_inventory: bool = True
    category_id: UUID | None = None

    @property
    def stock_status(self) -> str:
        if self.stock == 0:
            return "out_of_stock"
        if self.stock <= self.low_stock_threshold:
            return "low_stock"
        return "in_stock"


@dataclass(frozen=True)
class InventoryMovement:
    """A single recorded change to a product's stock."""

    product_id: UUID
    change_type: str
    quantity_change: int
    previous_stock: int
    new_stock: int
    notes: str = ""


@dataclass(frozen=True)
class ProductDraft:
    """Editable product fields for create and update."""

    name: str
    price: float
    stock: int
    low_stock_threshold: int = 10
    track_inventory: bool = True
    category_id: UUID | None = None
