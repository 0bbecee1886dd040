"""
Persistence Reconciler

Keeps the in-memory cart consistent with exactly one durable store:
- guests persist to local device storage
- signed-in users persist to the server cart
- a guest cart is merged into the server cart once, at sign-in

Storage failures never escape: reads degrade to local storage (or an
empty cart), writes keep the in-memory state and are retried by the next
mutation.
"""
import asyncio
from enum import Enum
from typing import List, Optional, Set

from shoecart.errors import CartAuthError, CartError, MSG_SIGN_IN_REQUIRED
from shoecart.logging import get_logger
from .backends import LocalBackend, PersistenceBackend, RemoteBackend
from .models import LineItem, merge_items
from .notifications import Notifier
from .store import CartStore

logger = get_logger(__name__)


class ReconcilerState(str, Enum):
    """Lifecycle of a cart session's persistence."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED_LOCAL = "loaded_local"
    MERGING = "merging"
    LOADED_SERVER = "loaded_server"


class PersistenceReconciler:
    """Chooses the backend for a session and performs load / merge."""

    def __init__(
        self,
        store: CartStore,
        remote: RemoteBackend,
        local: LocalBackend,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.remote = remote
        self.local = local
        self.notifier = notifier or Notifier()
        self.state = ReconcilerState.UNLOADED
        self.backend: PersistenceBackend = local
        self.merge_pending = False
        self._loaded = False
        self._background: Set[asyncio.Task] = set()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def is_remote(self) -> bool:
        return self.backend.is_remote

    # ==================== LOAD ====================

    async def load(self, authenticated: bool) -> List[LineItem]:
        """
        Initial load. Runs once per session; later calls return the current items.
        """
        if self._loaded or self.state is ReconcilerState.LOADING:
            return self.store.items

        self.state = ReconcilerState.LOADING
        try:
            if authenticated:
                await self._load_authenticated()
            else:
                self._load_local()
        except Exception as e:
            # Nothing from loading reaches the UI
            logger.error(f"Cart load failed, falling back to local storage: {e}", exc_info=True)
            self._load_local()
        finally:
            self._loaded = True

        return self.store.items

    async def _load_authenticated(self) -> None:
        try:
            server_items = await self.remote.load()
        except CartAuthError as e:
            logger.warning(f"Server cart refused ({e.status_code}), using local cart")
            self.notifier.error(MSG_SIGN_IN_REQUIRED)
            self._load_local()
            return
        except CartError as e:
            logger.warning(f"Server cart unavailable, using local cart: {e}")
            self._load_local()
            return

        # Guest items left on the device (added before sign-in finished) are merged in
        local_items = self.local.read()
        if local_items:
            self._apply_merge(server_items, local_items)
            return

        self.backend = self.remote
        self.store.replace(server_items, notify=False)
        self.state = ReconcilerState.LOADED_SERVER
        logger.info(f"Loaded server cart with {len(server_items)} items")

    def _load_local(self) -> None:
        items = self.local.read()
        self.backend = self.local
        self.store.replace(items, notify=False)
        self.state = ReconcilerState.LOADED_LOCAL
        logger.info(f"Loaded local cart with {len(items)} items")

    # ==================== MERGE ====================

    async def on_signed_in(self) -> None:
        """Guest -> signed-in transition: merge the guest cart into the server cart."""
        if not self._loaded:
            await self.load(authenticated=True)
            return
        if self.state in (ReconcilerState.LOADED_SERVER, ReconcilerState.MERGING):
            return

        self.state = ReconcilerState.MERGING
        try:
            server_items = await self.remote.load()
        except CartAuthError:
            self.notifier.error(MSG_SIGN_IN_REQUIRED)
            self._defer_merge()
            return
        except CartError as e:
            # Replacing the server cart without having read it would lose its items
            logger.warning(f"Server cart unavailable, merge deferred: {e}")
            self._defer_merge()
            return

        self._apply_merge(server_items, self.store.items)

    def _defer_merge(self) -> None:
        self.merge_pending = True
        self.state = ReconcilerState.LOADED_LOCAL

    def _apply_merge(self, server_items: List[LineItem], local_items: List[LineItem]) -> None:
        merged = merge_items(server_items, local_items)
        self.backend = self.remote
        self.store.replace(merged, notify=False)
        self.merge_pending = False
        self.state = ReconcilerState.LOADED_SERVER
        logger.info(
            f"Merged guest cart ({len(local_items)} items) into server cart "
            f"({len(server_items)} items) -> {len(merged)} items"
        )
        self._spawn(self._persist_merged(merged))
        self.local.erase()

    async def _persist_merged(self, items: List[LineItem]) -> None:
        try:
            await self.remote.save(items)
        except CartAuthError:
            self.notifier.error(MSG_SIGN_IN_REQUIRED)
        except CartError as e:
            # The merged cart stays in memory; the next mutation syncs it again
            logger.warning(f"Failed to persist merged cart: {e}")

    def on_signed_out(self) -> None:
        """Signed-in -> guest: later writes go to this device only."""
        self.backend = self.local
        self.merge_pending = False
        self.state = ReconcilerState.LOADED_LOCAL

    # ==================== PERSIST ====================

    async def persist(self, items: List[LineItem]) -> bool:
        """
        Write the full list to the current backend.

        Returns:
            True if the write landed, False if it failed (state kept, retried later)
        """
        if self.merge_pending:
            await self.on_signed_in()
            if self.merge_pending:
                return await self._save(self.local, items)
            # The merge persisted its own result
            return True

        return await self._save(self.backend, items)

    async def _save(self, backend: PersistenceBackend, items: List[LineItem]) -> bool:
        try:
            await backend.save(items)
            return True
        except CartAuthError as e:
            logger.warning(f"Cart sync refused ({e.status_code})")
            self.notifier.error(MSG_SIGN_IN_REQUIRED)
            return False
        except CartError as e:
            logger.warning(f"Cart sync to {backend.mode.value} storage failed: {e}")
            return False

    # ==================== BACKGROUND ====================

    def _spawn(self, coro) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, merged cart will be synced on next mutation")
            return
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for fire-and-forget writes (merge persist) to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
