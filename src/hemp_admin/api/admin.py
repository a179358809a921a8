"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from hemp_admin.api.models import (
    InventoryAdjustRequest,
    ProductRequest,
    RevalidateRequest,
)
from hemp_admin.domain.cache import path_tag
from hemp_admin.services.catalog import (
    InventoryAdjustmentError,
    ProductInUseError,
    ProductNotFoundError,
)

if TYPE_CHECKING:
    from hemp_admin.containers import AppContainer
    from hemp_admin.domain.catalog import InventoryMovement, Product

router = APIRouter(prefix="/admin", tags=["admin"])

_logger = logging.getLogger(__name__)


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/cache", dependencies=[Depends(require_admin)])
async def cache_stats(request: Request) -> dict[str, object]:
    """Return cache statistics for the data and page caches."""
    container: AppContainer = request.app.state.container
    stats = container.cache.stats()
    return {
        "success": True,
        "data": {
            "size": stats.size,
            "keys": stats.keys,
            "approx_memory": stats.approx_memory,
            "request_cache": {
                "size": container.serverless_cache.stats().size,
            },
            "page_cache": await container.page_cache.stats(),
            "uptime_seconds": time.monotonic() - request.app.state.started_at,
            "timestamp": _now_iso(),
        },
    }


@router.delete("/cache", dependencies=[Depends(require_admin)])
async def clear_cache(
    request: Request, key: str | None = None, tags: str | None = None
) -> dict[str, object]:
    """Delete one key, invalidate by comma-separated tags, or clear everything."""
    container: AppContainer = request.app.state.container
    if key:
        deleted = container.cache.delete(key)
        message = f"Deleted cache key: {key}" if deleted else f"Key not found: {key}"
        return {"success": True, "message": message}

    tag_list = [tag.strip() for tag in (tags or "").split(",") if tag.strip()]
    if tag_list:
        container.cache.invalidate_by_tags(tag_list)
        return {
            "success": True,
            "message": f"Invalidated cache for tags: {', '.join(tag_list)}",
        }

    container.cache.clear()
    container.serverless_cache.clear()
    return {"success": True, "message": "All cache cleared"}


@router.post("/revalidate")
async def revalidate(
    payload: RevalidateRequest,
    request: Request,
    x_admin_token: str | None = Header(default=None),
) -> dict[str, object]:
    """Invalidate cached data and pages for a path and/or tags.

    Accepts either the admin token or, for external webhooks, the configured
    revalidation secret in the body.
    """
    container: AppContainer = request.app.state.container
    secret = container.settings.revalidation_secret
    has_token = bool(x_admin_token) and x_admin_token == container.settings.admin_token
    has_secret = bool(secret) and payload.secret == secret
    if not (has_token or has_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret"
        )

    _logger.info(
        "Revalidation requested: path=%s tag=%s tags=%s",
        payload.path,
        payload.tag,
        payload.tags,
    )
    tags = list(payload.tags or [])
    if payload.tag and payload.tag not in tags:
        tags.append(payload.tag)
    if tags:
        container.cache.invalidate_by_tags(tags)
    for tag in tags:
        await container.page_cache.revalidate_tag(tag)
    if payload.path:
        await container.page_cache.revalidate_tag(path_tag(payload.path))

    return {
        "success": True,
        "message": "Revalidation triggered successfully",
        "revalidated": {
            "path": payload.path,
            "tag": payload.tag,
            "tags": payload.tags,
            "timestamp": _now_iso(),
        },
    }


@router.get("/revalidate", dependencies=[Depends(require_admin)])
async def revalidate_one(
    request: Request, path: str | None = None, tag: str | None = None
) -> dict[str, object]:
    """Revalidate a single path or tag on the page cache."""
    container: AppContainer = request.app.state.container
    if path:
        await container.page_cache.revalidate_tag(path_tag(path))
        return {
            "success": True,
            "message": f"Revalidated path: {path}",
            "timestamp": _now_iso(),
        }
    if tag:
        await container.page_cache.revalidate_tag(tag)
        return {
            "success": True,
            "message": f"Revalidated tag: {tag}",
            "timestamp": _now_iso(),
        }
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Path or tag parameter required",
    )


@router.get("/dashboard", dependencies=[Depends(require_admin)])
async def dashboard(request: Request, refresh: bool = False) -> dict[str, object]:
    """Return dashboard aggregates, cached unless ``refresh`` is set."""
    container: AppContainer = request.app.state.container
    data = await container.dashboard_service.get_overview(refresh=refresh)
    return {"success": True, "data": data, "cached": not refresh}


@router.get("/products", dependencies=[Depends(require_admin)])
async def list_products(request: Request, limit: int = 50) -> dict[str, object]:
    """Return products."""
    container: AppContainer = request.app.state.container
    products = await container.catalog_service.list_products(limit)
    return {"products": [_serialize_product(product) for product in products]}


@router.get("/products/{product_id}", dependencies=[Depends(require_admin)])
async def product_detail(product_id: UUID, request: Request) -> dict[str, object]:
    """Return a single product."""
    container: AppContainer = request.app.state.container
    try:
        product = await container.catalog_service.get_product(product_id)
    except ProductNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        ) from exc
    return {"product": _serialize_product(product)}


@router.post("/products", dependencies=[Depends(require_admin)])
async def create_product(
    payload: ProductRequest, request: Request
) -> dict[str, object]:
    """Create a product and revalidate product caches."""
    container: AppContainer = request.app.state.container
    product = await container.catalog_service.create_product(payload.to_draft())
    return {
        "success": True,
        "data": _serialize_product(product),
        "message": "Product created successfully",
    }


@router.put("/products/{product_id}", dependencies=[Depends(require_admin)])
async def update_product(
    product_id: UUID, payload: ProductRequest, request: Request
) -> dict[str, object]:
    """Replace a product and revalidate product caches."""
    container: AppContainer = request.app.state.container
    try:
        product = await container.catalog_service.update_product(
            product_id, payload.to_draft()
        )
    except ProductNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        ) from exc
    return {
        "success": True,
        "data": _serialize_product(product),
        "message": "Product updated successfully",
    }


@router.delete("/products/{product_id}", dependencies=[Depends(require_admin)])
async def delete_product(product_id: UUID, request: Request) -> dict[str, object]:
    """Delete a product that has never been ordered."""
    container: AppContainer = request.app.state.container
    try:
        await container.catalog_service.delete_product(product_id)
    except ProductNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        ) from exc
    except ProductInUseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return {"success": True, "message": "Product deleted successfully"}


@router.get("/inventory/low-stock", dependencies=[Depends(require_admin)])
async def low_stock(request: Request, limit: int = 20) -> dict[str, object]:
    """Return products that are low on or out of stock."""
    container: AppContainer = request.app.state.container
    products = await container.catalog_service.list_low_stock(limit)
    return {"products": [_serialize_product(product) for product in products]}


@router.post("/inventory/adjust", dependencies=[Depends(require_admin)])
async def adjust_inventory(
    payload: InventoryAdjustRequest, request: Request
) -> dict[str, object]:
    """Adjust a product's stock and invalidate affected caches."""
    container: AppContainer = request.app.state.container
    try:
        product, movement = await container.catalog_service.adjust_inventory(
            product_id=payload.product_id,
            adjustment_type=payload.adjustment_type,
            quantity=payload.quantity,
            notes=payload.notes,
        )
    except ProductNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        ) from exc
    except InventoryAdjustmentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return {
        "success": True,
        "data": {
            "product": _serialize_product(product),
            "adjustment": _serialize_movement(movement),
        },
        "message": "Inventory adjusted successfully",
    }


def _serialize_product(product: Product) -> dict[str, object]:
    return {
        "id": str(product.id),
        "name": product.name,
        "price": product.price,
        "stock": product.stock,
        "low_stock_threshold": product.low_stock_threshold,
        "status": product.stock_status,
        "category_id": str(product.category_id) if product.category_id else None,
    }


def _serialize_movement(movement: InventoryMovement) -> dict[str, object]:
    return {
        "type": movement.change_type,
        "quantity": movement.quantity_change,
        "previous_stock": movement.previous_stock,
        "new_stock": movement.new_stock,
        "notes": movement.notes,
    }


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()
