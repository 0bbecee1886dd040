"""In-memory cart state: the canonical list of line items for one session."""
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from shoecart.logging import get_logger
from shoecart.services.money import subtract
from .models import (
    ALL_SIZES,
    LineItem,
    ProductSnapshot,
    SizeArg,
    clamp_quantity,
    parse_quantity,
    item_key,
    matches,
    dedupe_items,
)

logger = get_logger(__name__)

Listener = Callable[[str], None]
Snapshot = Tuple[LineItem, ...]


class CartStore:
    """
    Ordered, key-unique list of line items.

    All mutations are synchronous. Listeners are told the name of the
    mutation after it has been applied; derived totals are computed on
    every read.
    """

    def __init__(self, items: Optional[List[LineItem]] = None):
        self._items: List[LineItem] = dedupe_items(list(items or []))
        self._listeners: List[Listener] = []

    # ==================== READS ====================

    @property
    def items(self) -> List[LineItem]:
        return list(self._items)

    def find(self, product_id: str, selected_size: Optional[int] = None) -> Optional[LineItem]:
        key = item_key(product_id, selected_size)
        return next((item for item in self._items if item.key == key), None)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def item_count(self) -> int:
        """Total number of units in the cart."""
        return sum(item.quantity for item in self._items)

    @property
    def total_price(self) -> Decimal:
        return sum((item.total_price for item in self._items), Decimal("0"))

    @property
    def total_price_without_discount(self) -> Decimal:
        return sum((item.total_list_price for item in self._items), Decimal("0"))

    @property
    def total_discount(self) -> Decimal:
        return subtract(self.total_price_without_discount, self.total_price)

    def snapshot(self) -> Snapshot:
        return tuple(self._items)

    # ==================== MUTATIONS ====================

    def add(self, product: ProductSnapshot) -> bool:
        """Add one unit of the product (in its selected size)."""
        if not product or not product.id:
            logger.warning("Ignoring add without product id")
            return False

        key = item_key(product.id, product.selected_size)
        for index, item in enumerate(self._items):
            if item.key == key:
                self._items[index] = item.with_quantity(item.quantity + 1)
                break
        else:
            self._items.append(LineItem(product=product, quantity=1))

        self._notify("add")
        return True

    def remove(self, product_id: str, selected_size: SizeArg = ALL_SIZES) -> bool:
        """Remove one size variant, or every variant when the size is not given."""
        remaining = [item for item in self._items if not matches(item, product_id, selected_size)]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._notify("remove")
        return True

    def set_quantity(self, product_id: str, quantity: int, selected_size: SizeArg = ALL_SIZES) -> bool:
        """Replace the quantity of matching items; zero or less removes them."""
        quantity = parse_quantity(quantity)
        if quantity is None:
            return False
        if quantity <= 0:
            return self.remove(product_id, selected_size)

        quantity = clamp_quantity(quantity)
        changed = False
        for index, item in enumerate(self._items):
            if matches(item, product_id, selected_size):
                self._items[index] = item.with_quantity(quantity)
                changed = True

        if changed:
            self._notify("set_quantity")
        return changed

    def clear(self) -> None:
        self._items = []
        self._notify("clear")

    def replace(self, items: List[LineItem], notify: bool = True) -> None:
        """Swap in a whole list (load, merge). Repeated keys are collapsed."""
        self._items = dedupe_items(list(items))
        if notify:
            self._notify("replace")

    def restore(self, snapshot: Snapshot) -> None:
        """Put back a list taken with snapshot(). Not reported to listeners."""
        self._items = list(snapshot)

    # ==================== LISTENERS ====================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a mutation listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, mutation: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(mutation)
            except Exception as e:
                logger.error(f"Cart listener failed after {mutation}: {e}", exc_info=True)
