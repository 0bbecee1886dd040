"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Optional, List, Tuple, Union

from shoecart.config import CART_MAX_QUANTITY, MIN_SIZE, MAX_SIZE
from shoecart.services.money import to_decimal, optional_decimal, to_json_number, multiply


class _AllSizes:
    """Marker for "size not given": matches every size variant of a product."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ALL_SIZES"


ALL_SIZES = _AllSizes()

SizeArg = Union[int, None, _AllSizes]
ItemKey = Tuple[str, Union[int, str]]


def normalize_size(value: Any) -> Optional[int]:
    """
    Coerce an external size value to the shoe-size domain.

    Fractional sizes are rounded, out-of-range sizes are clamped and
    anything that is not a number means "no size".
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        size = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None
    return max(MIN_SIZE, min(MAX_SIZE, size))


def clamp_quantity(value: Any) -> int:
    """
    Clamp a quantity to [1, CART_MAX_QUANTITY].

    Callers handle quantity <= 0 as removal before clamping.
    """
    try:
        quantity = int(value)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, min(CART_MAX_QUANTITY, quantity))


def parse_quantity(value: Any) -> Optional[int]:
    """
    Whole units from an external quantity ("3", 2.0, 0.5 -> 3, 2, 0).

    Returns None for anything that is not a number. Fractions are cut
    towards zero, so a value below one unit reads as a removal.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class ProductSnapshot:
    """Product as it was when it went into the cart."""
    id: str
    price: Decimal
    old_price: Optional[Decimal] = None
    brand_name: str = ""
    model: str = ""
    image: Optional[str] = None
    selected_size: Optional[int] = None
    # Everything else the catalog sent (category, description, ...), round-tripped untouched
    extra: dict = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        # Normalize numeric fields
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "old_price", optional_decimal(self.old_price))
        object.__setattr__(self, "selected_size", normalize_size(self.selected_size))

    @property
    def list_price(self) -> Decimal:
        """Price before discount: the old price when there is one."""
        return self.old_price if self.old_price is not None else self.price

    def with_size(self, size: Optional[int]) -> "ProductSnapshot":
        return replace(self, selected_size=size)

    def to_dict(self) -> dict:
        """Convert to the storefront's camelCase product payload."""
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "brandName": self.brand_name,
            "model": self.model,
            "price": to_json_number(self.price),
            "oldPrice": to_json_number(self.old_price),
            "image": self.image,
            "selectedSize": self.selected_size,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ProductSnapshot":
        """Create from a product payload (API response or local storage)."""
        known = {"id", "brandName", "model", "price", "oldPrice", "image", "selectedSize"}
        product_id = data["id"]
        if product_id is None or product_id == "":
            raise ValueError("product id is required")
        return cls(
            id=str(product_id),
            price=to_decimal(data.get("price")),
            old_price=optional_decimal(data.get("oldPrice")),
            brand_name=data.get("brandName") or "",
            model=data.get("model") or "",
            image=data.get("image"),
            selected_size=data.get("selectedSize"),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class LineItem:
    """Single line in the cart: a product (plus size) and a quantity."""
    product: ProductSnapshot
    quantity: int = 1

    def __post_init__(self):
        object.__setattr__(self, "quantity", clamp_quantity(self.quantity))

    @property
    def key(self) -> ItemKey:
        return item_key(self.product.id, self.product.selected_size)

    @property
    def total_price(self) -> Decimal:
        """Total at the current price for all units."""
        return multiply(self.product.price, self.quantity)

    @property
    def total_list_price(self) -> Decimal:
        """Total at the pre-discount price for all units."""
        return multiply(self.product.list_price, self.quantity)

    def with_quantity(self, quantity: int) -> "LineItem":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """
        Create from dictionary.

        Raises:
            ValueError: if the quantity is not a number or is zero or less
        """
        quantity = parse_quantity(data.get("quantity", 1))
        if quantity is None or quantity <= 0:
            raise ValueError(f"invalid quantity: {data.get('quantity')!r}")
        return cls(
            product=ProductSnapshot.from_dict(data["product"]),
            quantity=quantity,
        )


def item_key(product_id: str, selected_size: Optional[int]) -> ItemKey:
    """Uniqueness key of a line item; sizeless products share the "default" slot."""
    return (str(product_id), selected_size if selected_size is not None else "default")


def matches(item: LineItem, product_id: str, selected_size: SizeArg = ALL_SIZES) -> bool:
    """True if the item is the product (and, when given, the size) being addressed."""
    if item.product.id != str(product_id):
        return False
    if selected_size is ALL_SIZES:
        return True
    return item.product.selected_size == normalize_size(selected_size)


def items_from_payload(raw: Any) -> List[LineItem]:
    """
    Parse a list of line-item dicts, dropping entries that cannot be parsed.

    Raises:
        ValueError: if the payload is not a list at all
    """
    if not isinstance(raw, list):
        raise ValueError("cart payload must be a list")
    items: List[LineItem] = []
    for entry in raw:
        try:
            items.append(LineItem.from_dict(entry))
        except (KeyError, TypeError, AttributeError, ValueError):
            continue
    return dedupe_items(items)


def items_to_payload(items: List[LineItem]) -> List[dict]:
    return [item.to_dict() for item in items]


def dedupe_items(items: List[LineItem]) -> List[LineItem]:
    """Collapse repeated keys into one item (quantities summed, first position kept)."""
    merged: dict = {}
    for item in items:
        existing = merged.get(item.key)
        if existing is None:
            merged[item.key] = item
        else:
            merged[item.key] = existing.with_quantity(existing.quantity + item.quantity)
    return list(merged.values())


def merge_items(server_items: List[LineItem], local_items: List[LineItem]) -> List[LineItem]:
    """
    Union a guest cart into a server cart at sign-in.

    Server items keep their order and come first; a local item whose key is
    already present adds its quantity to the server one (both intents are
    kept), other local items are appended in their own order.
    """
    merged: dict = {}
    for item in server_items:
        existing = merged.get(item.key)
        merged[item.key] = item if existing is None else existing.with_quantity(existing.quantity + item.quantity)

    for item in local_items:
        existing = merged.get(item.key)
        if existing is not None:
            merged[item.key] = existing.with_quantity(existing.quantity + item.quantity)
        else:
            merged[item.key] = item

    return list(merged.values())
