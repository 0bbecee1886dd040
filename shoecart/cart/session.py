"""
Cart Session - the object the UI holds for the lifetime of a visit.

Wires the store, reconciler and sync scheduler together and is passed to
views explicitly; there is no module-level cart.

Two kinds of operations:
- optimistic (add, remove, set_quantity, clear): applied at once, persisted
  by the debounced full-list sync
- confirmed (add_item, remove_item, update_quantity, clear_cart): applied at
  once, persisted through the per-item endpoints; remove/update/clear are
  rolled back if the server refuses
"""
from decimal import Decimal
from typing import List, Optional, Set

from shoecart.config import CART_SYNC_DEBOUNCE_MS
from shoecart.errors import (
    CartAuthError,
    CartError,
    ERROR_PRODUCT_NOT_FOUND,
    MSG_ADD_FAILED,
    MSG_CLEAR_FAILED,
    MSG_ITEM_ADDED,
    MSG_ITEM_ADDED_LOCALLY,
    MSG_REMOVE_FAILED,
    MSG_SIGN_IN_REQUIRED,
    MSG_UPDATE_FAILED,
)
from shoecart.logging import get_logger, sanitize_id_for_logging
from .backends import LocalBackend, RemoteBackend
from .client import CartStorageClient
from .models import ALL_SIZES, ItemKey, LineItem, ProductSnapshot, SizeArg, clamp_quantity, matches, parse_quantity
from .notifications import Notifier
from .reconciler import PersistenceReconciler, ReconcilerState
from .scheduler import SyncScheduler
from .storage import LocalStorage, MemoryStorage
from .store import CartStore, Snapshot

logger = get_logger(__name__)


def default_local_storage() -> LocalStorage:
    """File storage when the device allows it, process memory otherwise."""
    storage = LocalStorage()
    if storage.is_available():
        return storage
    return MemoryStorage()


class CartSession:
    """Session-scoped cart context."""

    def __init__(
        self,
        client: CartStorageClient,
        storage: Optional[LocalStorage] = None,
        notifier: Optional[Notifier] = None,
        debounce_ms: int = CART_SYNC_DEBOUNCE_MS,
    ):
        self.client = client
        self.notifier = notifier or Notifier()
        self.store = CartStore()
        self.reconciler = PersistenceReconciler(
            self.store,
            RemoteBackend(client),
            LocalBackend(storage if storage is not None else default_local_storage()),
            self.notifier,
        )
        self.scheduler = SyncScheduler(self.store, self.reconciler, debounce_ms)
        self.is_loading = False

    # ==================== LIFECYCLE ====================

    async def start(self, authenticated: bool) -> List[LineItem]:
        """Initial load (mount). Safe to call again: loads once per session."""
        self.is_loading = True
        try:
            return await self.reconciler.load(authenticated)
        finally:
            self.is_loading = False

    async def on_signed_in(self) -> None:
        """The guest just signed in: merge their cart into the server cart."""
        await self.scheduler.flush()
        self.is_loading = True
        try:
            await self.reconciler.on_signed_in()
        finally:
            self.is_loading = False

    async def on_signed_out(self) -> None:
        """Logout: finish pending writes, then start over as an empty guest cart."""
        await self.scheduler.flush()
        self.reconciler.on_signed_out()
        self.store.clear()

    async def close(self) -> None:
        """Session end: persist pending changes and stop syncing."""
        await self.scheduler.close()
        await self.reconciler.wait_background()

    @property
    def is_authenticated(self) -> bool:
        return self.reconciler.is_remote

    @property
    def state(self) -> ReconcilerState:
        return self.reconciler.state

    # ==================== READS ====================

    @property
    def items(self) -> List[LineItem]:
        return self.store.items

    @property
    def item_count(self) -> int:
        return self.store.item_count

    @property
    def total_price(self) -> Decimal:
        return self.store.total_price

    @property
    def total_price_without_discount(self) -> Decimal:
        return self.store.total_price_without_discount

    @property
    def total_discount(self) -> Decimal:
        return self.store.total_discount

    def find(self, product_id: str, selected_size: Optional[int] = None) -> Optional[LineItem]:
        return self.store.find(product_id, selected_size)

    # ==================== OPTIMISTIC ====================

    def add(self, product: ProductSnapshot) -> bool:
        return self.store.add(product)

    def remove(self, product_id: str, selected_size: SizeArg = ALL_SIZES) -> bool:
        return self.store.remove(product_id, selected_size)

    def set_quantity(self, product_id: str, quantity: int, selected_size: SizeArg = ALL_SIZES) -> bool:
        return self.store.set_quantity(product_id, quantity, selected_size)

    def clear(self) -> None:
        self.store.clear()

    # ==================== CONFIRMED ====================

    async def add_item(self, product: ProductSnapshot) -> bool:
        """
        Add one unit. Never rolled back: if the server call fails the item
        stays in the cart and the next full-list sync carries it.
        """
        if not self.is_authenticated:
            added = self.store.add(product)
            if added:
                self.notifier.success(MSG_ITEM_ADDED)
            return added

        with self.scheduler.suspended():
            if not self.store.add(product):
                return False

        try:
            await self.client.add_item(product.id, 1, product.selected_size)
        except CartAuthError:
            self.notifier.error(MSG_SIGN_IN_REQUIRED)
            self.scheduler.schedule()
            return True
        except CartError as e:
            logger.warning(f"Add of {sanitize_id_for_logging(product.id)} not confirmed, kept locally: {e}")
            self.notifier.success(MSG_ITEM_ADDED_LOCALLY)
            self.scheduler.schedule()
            return True

        self.notifier.success(MSG_ITEM_ADDED)
        return True

    async def add_product(self, product_id: str, selected_size: Optional[int] = None) -> bool:
        """Look the product up in the catalog, snapshot its price and add it."""
        try:
            product = await self.client.get_price(product_id)
        except CartError as e:
            logger.warning(f"Price lookup for {sanitize_id_for_logging(product_id)} failed: {e}")
            self.notifier.error(MSG_ADD_FAILED)
            return False

        if product is None:
            self.notifier.error(ERROR_PRODUCT_NOT_FOUND)
            return False

        return await self.add_item(product.with_size(selected_size))

    async def remove_item(self, product_id: str, selected_size: SizeArg = ALL_SIZES) -> bool:
        """Remove a size variant (or all variants); restored if the server refuses."""
        if not self.is_authenticated:
            return self.store.remove(product_id, selected_size)

        targets = [item for item in self.store.items if matches(item, product_id, selected_size)]
        if not targets:
            return False

        before = self.store.snapshot()
        with self.scheduler.suspended():
            self.store.remove(product_id, selected_size)

        confirmed = set()
        try:
            for item in targets:
                await self.client.remove_item(product_id, item.product.selected_size)
                confirmed.add(item.key)
        except CartError as e:
            self._rollback(before, e, MSG_REMOVE_FAILED, confirmed)
            return False
        return True

    async def update_quantity(self, product_id: str, quantity: int, selected_size: SizeArg = ALL_SIZES) -> bool:
        """Set a quantity (<= 0 removes); restored if the server refuses."""
        quantity = parse_quantity(quantity)
        if quantity is None:
            return False
        if quantity <= 0:
            return await self.remove_item(product_id, selected_size)

        if not self.is_authenticated:
            return self.store.set_quantity(product_id, quantity, selected_size)

        targets = [item for item in self.store.items if matches(item, product_id, selected_size)]
        if not targets:
            return False

        quantity = clamp_quantity(quantity)
        before = self.store.snapshot()
        with self.scheduler.suspended():
            self.store.set_quantity(product_id, quantity, selected_size)

        confirmed = set()
        try:
            for item in targets:
                await self.client.update_item(product_id, quantity, item.product.selected_size)
                confirmed.add(item.key)
        except CartError as e:
            self._rollback(before, e, MSG_UPDATE_FAILED, confirmed)
            return False
        return True

    async def clear_cart(self) -> bool:
        """Empty the cart; restored if the server refuses."""
        if not self.is_authenticated:
            self.store.clear()
            return True

        before = self.store.snapshot()
        with self.scheduler.suspended():
            self.store.clear()

        try:
            await self.client.clear_cart()
        except CartError as e:
            self._rollback(before, e, MSG_CLEAR_FAILED)
            return False
        return True

    async def checkout_completed(self) -> bool:
        """A successful checkout empties the cart."""
        return await self.clear_cart()

    def _rollback(
        self, before: Snapshot, error: CartError, message: str, confirmed: Set[ItemKey] = frozenset()
    ) -> None:
        """
        Put back the items whose server call did not go through.

        Variants the server already accepted keep their new state (or stay
        removed), so a partly applied multi-size operation leaves client and
        server holding the same cart.
        """
        current = {item.key: item for item in self.store.items}
        restored = []
        for item in before:
            if item.key not in confirmed:
                restored.append(item)
            elif item.key in current:
                restored.append(current[item.key])
        self.store.restore(tuple(restored))
        logger.warning(f"Cart operation refused, rolled back: {error}")
        self.notifier.error(MSG_SIGN_IN_REQUIRED if isinstance(error, CartAuthError) else message)
