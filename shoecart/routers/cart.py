"""
Cart Storage Router

Server side of the cart sync: one Redis cart per signed-in user.

Line items are stored as (product id, size, quantity); product data is
joined from the catalog on read, so clients always see current prices.
"""
import json
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from shoecart.auth import SessionUser, verify_session_auth
from shoecart.cart.models import ALL_SIZES, clamp_quantity, normalize_size, parse_quantity
from shoecart.errors import (
    ERROR_CART_NOT_FOUND,
    ERROR_CART_UNAVAILABLE,
    ERROR_CART_UPDATE_FAILED,
    ERROR_INVALID_ITEMS,
    ERROR_INVALID_JSON,
    ERROR_ITEM_NOT_IN_CART,
    ERROR_PRODUCT_ID_REQUIRED,
    ERROR_PRODUCT_NOT_FOUND,
    ERROR_QUANTITY_REQUIRED,
)
from shoecart.logging import get_logger, sanitize_id_for_logging
from shoecart.services.cart_manager import CartStorageUnavailable, StoredCartItem, get_cart_manager
from shoecart.services.database import get_database_async
from .models import AddToCartRequest, RemoveCartItemRequest, UpdateCartItemRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


async def _format_cart_response(cart) -> dict:
    """Join stored line items with catalog data. Items whose product is gone are dropped."""
    if not cart or not cart.items:
        return {"items": []}

    db = await get_database_async()
    products = await db.get_products_by_ids(item.product_id for item in cart.items)

    items = []
    for item in cart.items:
        product = products.get(item.product_id)
        if product is None:
            logger.warning(f"Cart references missing product {sanitize_id_for_logging(item.product_id)}")
            continue
        items.append({
            "product": product.to_cart_payload(item.size),
            "quantity": item.quantity,
        })
    return {"items": items}


def _parse_replace_items(raw) -> List[StoredCartItem]:
    """
    Validate a full-replace payload.

    Entries without a product id, or whose quantity is missing, not a
    number or zero or less, are skipped.
    """
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail=ERROR_INVALID_ITEMS)

    parsed: List[StoredCartItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        product = entry.get("product")
        quantity = parse_quantity(entry.get("quantity"))
        if not isinstance(product, dict) or not product.get("id") or quantity is None or quantity <= 0:
            logger.warning("Skipping cart item with missing or invalid fields")
            continue
        parsed.append(StoredCartItem(
            product_id=str(product["id"]),
            quantity=clamp_quantity(quantity),
            size=normalize_size(product.get("selectedSize")),
        ))
    return parsed


@router.get("")
async def get_cart(user: SessionUser = Depends(verify_session_auth)):
    """Get the caller's cart with current product data."""
    try:
        cart = await get_cart_manager().get_cart(user.id)
        return await _format_cart_response(cart)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UNAVAILABLE)


@router.post("")
async def replace_cart(request: Request, user: SessionUser = Depends(verify_session_auth)):
    """Replace the whole cart (debounced client sync)."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail=ERROR_INVALID_JSON)
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail=ERROR_INVALID_ITEMS)

    items = _parse_replace_items(body.get("items"))

    try:
        if items:
            db = await get_database_async()
            known = await db.get_products_by_ids(item.product_id for item in items)
            skipped = [item for item in items if item.product_id not in known]
            if skipped:
                logger.warning(f"Skipping {len(skipped)} cart item(s) for unknown products")
            items = [item for item in items if item.product_id in known]

        await get_cart_manager().replace_items(user.id, items)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to replace cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UPDATE_FAILED)

    return {"success": True, "count": len(items)}


@router.post("/add")
async def add_to_cart(request: AddToCartRequest, user: SessionUser = Depends(verify_session_auth)):
    """Add a product (and size) to the cart, incrementing an existing line."""
    if not request.product_id:
        raise HTTPException(status_code=400, detail=ERROR_PRODUCT_ID_REQUIRED)

    try:
        db = await get_database_async()
        product = await db.get_product_by_id(request.product_id)
    except Exception as e:
        logger.error(f"Failed to look up product: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UPDATE_FAILED)
    if not product:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)

    cart_manager = get_cart_manager()
    try:
        cart = await cart_manager.add_item(
            user.id,
            request.product_id,
            quantity=request.quantity,
            size=normalize_size(request.selected_size),
        )
    except CartStorageUnavailable as e:
        logger.error(f"Failed to add to cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UPDATE_FAILED)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))

    return {"success": True, "count": len(cart.items)}


@router.post("/remove")
async def remove_from_cart(request: RemoveCartItemRequest, user: SessionUser = Depends(verify_session_auth)):
    """Remove a line item. Without selectedSize every size of the product goes."""
    if not request.product_id:
        raise HTTPException(status_code=400, detail=ERROR_PRODUCT_ID_REQUIRED)
    size = normalize_size(request.selected_size) if request.size_given else ALL_SIZES

    cart_manager = get_cart_manager()
    try:
        if await cart_manager.get_cart(user.id) is None:
            raise HTTPException(status_code=404, detail=ERROR_CART_NOT_FOUND)
        cart = await cart_manager.remove_item(user.id, request.product_id, size)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to remove cart item: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UPDATE_FAILED)

    if cart is None:
        raise HTTPException(status_code=404, detail=ERROR_ITEM_NOT_IN_CART)
    return {"success": True, "count": len(cart.items)}


@router.post("/update")
async def update_cart_item(request: UpdateCartItemRequest, user: SessionUser = Depends(verify_session_auth)):
    """Set a line item's quantity (<= 0 removes it)."""
    if not request.product_id or request.quantity is None:
        raise HTTPException(status_code=400, detail=ERROR_QUANTITY_REQUIRED)
    size = normalize_size(request.selected_size) if request.size_given else ALL_SIZES

    cart_manager = get_cart_manager()
    try:
        if await cart_manager.get_cart(user.id) is None:
            raise HTTPException(status_code=404, detail=ERROR_CART_NOT_FOUND)
        cart = await cart_manager.update_item_quantity(user.id, request.product_id, request.quantity, size)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update cart item: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UPDATE_FAILED)

    if cart is None:
        raise HTTPException(status_code=404, detail=ERROR_ITEM_NOT_IN_CART)
    return {"success": True, "count": len(cart.items)}


@router.post("/clear")
async def clear_cart(user: SessionUser = Depends(verify_session_auth)):
    """Remove every line item."""
    try:
        had_cart = await get_cart_manager().clear_cart(user.id)
    except Exception as e:
        logger.error(f"Failed to clear cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UPDATE_FAILED)

    return {"success": True, "cleared": had_cart}


@router.get("/get-price")
async def get_price(product_id: str = Query(None, alias="id")):
    """Current price of a product. Public: guests price their local carts too."""
    if not product_id:
        raise HTTPException(status_code=400, detail=ERROR_PRODUCT_ID_REQUIRED)

    try:
        db = await get_database_async()
        product = await db.get_product_by_id(product_id)
    except Exception as e:
        logger.error(f"Failed to get product price: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_CART_UNAVAILABLE)

    if not product:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    return {"product": product.to_price_payload()}
