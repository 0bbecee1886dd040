"""
Cart Manager - Redis-based server carts

One cart per signed-in user, stored as a JSON document with a TTL.
Line items hold only product id, size and quantity; product data is
joined from the catalog when the cart is read.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from shoecart.cart.models import ALL_SIZES, SizeArg, clamp_quantity, normalize_size
from shoecart.db import get_redis, RedisKeys, TTL
from shoecart.errors import ERROR_CART_UNAVAILABLE
from shoecart.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


class CartStorageUnavailable(ValueError):
    """Redis could not be reached or refused the operation."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StoredCartItem:
    """A persisted line item."""
    product_id: str
    quantity: int
    size: Optional[int] = None

    def matches(self, product_id: str, size: SizeArg = ALL_SIZES) -> bool:
        if self.product_id != product_id:
            return False
        return size is ALL_SIZES or self.size == size

    def to_dict(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict) -> "StoredCartItem":
        return cls(
            product_id=str(data["product_id"]),
            quantity=clamp_quantity(data["quantity"]),
            size=normalize_size(data.get("size")),
        )


@dataclass
class StoredCart:
    """A user's server cart."""
    user_id: str
    items: List[StoredCartItem] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        now = _now()
        if not self.created_at:
            self.created_at = now
        if not self.updated_at:
            self.updated_at = now

    def find(self, product_id: str, size: Optional[int]) -> Optional[StoredCartItem]:
        return next((item for item in self.items if item.matches(product_id, size)), None)

    def find_all(self, product_id: str, size: SizeArg = ALL_SIZES) -> List[StoredCartItem]:
        return [item for item in self.items if item.matches(product_id, size)]

    def to_dict(self) -> dict:
        """Convert to dictionary for Redis storage."""
        return {
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoredCart":
        return cls(
            user_id=str(data["user_id"]),
            items=[StoredCartItem.from_dict(item) for item in data.get("items", [])],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


class CartManager:
    """
    Manages server carts in Redis.

    Storage failures surface as CartStorageUnavailable so the router can
    answer 500; other ValueErrors are bad input.
    """

    def __init__(self, redis_client=None):
        self._redis = redis_client  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise CartStorageUnavailable(f"{ERROR_CART_UNAVAILABLE}: {e}")
        return self._redis

    async def get_cart(self, user_id: str) -> Optional[StoredCart]:
        """Get user's cart from Redis."""
        key = RedisKeys.cart_key(user_id)
        try:
            data = await self.redis.get(key)
        except Exception as e:
            logger.error(f"Failed to get cart from Redis: {e}")
            raise CartStorageUnavailable(f"{ERROR_CART_UNAVAILABLE}: {e}")

        if not data:
            return None

        try:
            return StoredCart.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            # Corrupted data - clear it and start over
            logger.warning(f"Corrupted cart data for user {sanitize_id_for_logging(user_id)}: {e}")
            await self.redis.delete(key)
            return None

    async def save_cart(self, cart: StoredCart) -> None:
        """Save cart to Redis with TTL."""
        try:
            cart.updated_at = _now()
            await self.redis.set(
                RedisKeys.cart_key(cart.user_id),
                json.dumps(cart.to_dict()),
                ex=TTL.CART,
            )
        except Exception as e:
            logger.error(f"Failed to save cart to Redis: {e}")
            raise CartStorageUnavailable(f"{ERROR_CART_UNAVAILABLE}: {e}")

    async def _get_or_create(self, user_id: str) -> StoredCart:
        cart = await self.get_cart(user_id)
        if cart is None:
            cart = StoredCart(user_id=user_id)
        return cart

    async def replace_items(self, user_id: str, items: List[StoredCartItem]) -> StoredCart:
        """Full replace. Repeated (product, size) pairs are collapsed."""
        cart = await self._get_or_create(user_id)
        collapsed: List[StoredCartItem] = []
        for item in items:
            existing = next((c for c in collapsed if c.matches(item.product_id, item.size)), None)
            if existing:
                existing.quantity = clamp_quantity(existing.quantity + item.quantity)
            else:
                collapsed.append(StoredCartItem(item.product_id, clamp_quantity(item.quantity), item.size))
        cart.items = collapsed
        await self.save_cart(cart)
        return cart

    async def add_item(self, user_id: str, product_id: str, quantity: int = 1, size: Optional[int] = None) -> StoredCart:
        """Increment an existing line item or create it."""
        if not product_id:
            raise ValueError("product_id must be a non-empty string")
        if not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")

        cart = await self._get_or_create(user_id)
        existing = cart.find(product_id, size)
        if existing:
            existing.quantity = clamp_quantity(existing.quantity + quantity)
        else:
            cart.items.append(StoredCartItem(product_id, clamp_quantity(quantity), size))

        await self.save_cart(cart)
        return cart

    async def update_item_quantity(
        self, user_id: str, product_id: str, quantity: int, size: SizeArg = ALL_SIZES
    ) -> Optional[StoredCart]:
        """
        Set a line item's quantity; <= 0 deletes it.

        With size omitted every variant of the product is updated.

        Returns:
            The cart, or None if the user has no cart / the item is not in it
        """
        cart = await self.get_cart(user_id)
        if cart is None:
            return None
        targets = cart.find_all(product_id, size)
        if not targets:
            return None

        for existing in targets:
            if quantity <= 0:
                cart.items.remove(existing)
            else:
                existing.quantity = clamp_quantity(quantity)

        await self.save_cart(cart)
        return cart

    async def remove_item(self, user_id: str, product_id: str, size: SizeArg = ALL_SIZES) -> Optional[StoredCart]:
        """Delete a line item (all variants when size is omitted). None if it was not in the cart."""
        return await self.update_item_quantity(user_id, product_id, 0, size)

    async def clear_cart(self, user_id: str) -> bool:
        """
        Remove all line items. The (empty) cart document is kept so an
        emptied cart stays distinguishable from one that never existed.

        Returns:
            False if the user had no cart
        """
        cart = await self.get_cart(user_id)
        if cart is None:
            return False
        cart.items = []
        await self.save_cart(cart)
        return True


# Singleton instance
_cart_manager: Optional[CartManager] = None


def get_cart_manager() -> CartManager:
    """Get CartManager singleton."""
    global _cart_manager
    if _cart_manager is None:
        _cart_manager = CartManager()
    return _cart_manager
