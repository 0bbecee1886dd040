"""
Sync Scheduler - trailing-edge debounce for cart persistence.

Every store mutation restarts the timer; when it fires, the latest full
list is handed to the reconciler. Intermediate states are coalesced, not
queued. Only one remote write is in flight at a time: a mutation that
lands during a write starts a new cycle once the write completes.

Guest carts skip the timer and go straight to local storage.
"""
import asyncio
from contextlib import contextmanager
from typing import Iterator, Optional

from shoecart.config import CART_SYNC_DEBOUNCE_MS
from shoecart.errors import CartError
from shoecart.logging import get_logger
from .reconciler import PersistenceReconciler
from .store import CartStore

logger = get_logger(__name__)


class SyncScheduler:
    """Owned by the cart session, not by any view: leaving a page does not cancel a sync."""

    def __init__(
        self,
        store: CartStore,
        reconciler: PersistenceReconciler,
        delay_ms: int = CART_SYNC_DEBOUNCE_MS,
    ):
        self.store = store
        self.reconciler = reconciler
        self.delay = delay_ms / 1000
        self.syncing = False
        self._pending = False
        self._handle: Optional[asyncio.TimerHandle] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._suspended = 0
        self._closed = False
        self._unsubscribe = store.subscribe(self._on_mutation)

    @property
    def pending(self) -> bool:
        """A mutation is waiting to be persisted."""
        return self._pending

    # ==================== TRIGGERS ====================

    def _on_mutation(self, mutation: str) -> None:
        if self._suspended or self._closed:
            return
        # Nothing is written before the initial load has settled
        if not self.reconciler.loaded:
            return

        if not self.reconciler.is_remote:
            self._write_local()
            if not self.reconciler.merge_pending:
                return

        self.schedule()

    def schedule(self) -> None:
        """(Re)start the debounce timer."""
        if self._closed:
            return
        self._pending = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside the event loop; flush() will pick it up
            logger.debug("No running event loop, cart sync left pending")
            return
        self._handle = loop.call_later(self.delay, self._on_timer)

    @contextmanager
    def suspended(self) -> Iterator[None]:
        """Mutations inside the block are persisted by the caller (per-item endpoints)."""
        self._suspended += 1
        try:
            yield
        finally:
            self._suspended -= 1

    # ==================== FIRING ====================

    def _on_timer(self) -> None:
        self._handle = None
        if self._in_flight is not None and not self._in_flight.done():
            # Picked up by a new cycle when the in-flight write completes
            return
        self._in_flight = asyncio.get_running_loop().create_task(self._sync())

    async def _sync(self) -> bool:
        self._pending = False
        items = self.store.items
        self.syncing = True
        try:
            return await self.reconciler.persist(items)
        except Exception as e:
            logger.error(f"Unexpected cart sync failure: {e}", exc_info=True)
            return False
        finally:
            self.syncing = False
            if self._pending and self._handle is None and not self._closed:
                self.schedule()

    def _write_local(self) -> None:
        try:
            self.reconciler.local.write(self.store.items)
        except CartError as e:
            logger.warning(f"Failed to save cart on this device: {e}")

    # ==================== LIFECYCLE ====================

    async def flush(self) -> None:
        """Persist any pending state now instead of waiting for the timer."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.gather(self._in_flight, return_exceptions=True)
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None
        if self._pending and self.reconciler.loaded:
            self._in_flight = asyncio.get_running_loop().create_task(self._sync())
            await asyncio.gather(self._in_flight, return_exceptions=True)
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None

    async def close(self) -> None:
        """Flush, then stop observing the store."""
        await self.flush()
        self._closed = True
        self._unsubscribe()
