"""Persistence backends: where a session's cart is durably kept.

The reconciler holds exactly one current backend and swaps it only at the
guest -> signed-in boundary (and back at sign-out).
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import List

from shoecart.config import LOCAL_STORAGE_CART_KEY
from shoecart.errors import CartTransientError
from shoecart.logging import get_logger
from .client import CartStorageClient
from .models import LineItem, items_from_payload, items_to_payload
from .storage import LocalStorage

logger = get_logger(__name__)


class BackendMode(str, Enum):
    """Owner of the cart being persisted."""
    REMOTE = "remote"  # signed-in user, server cart
    LOCAL = "local"  # guest, this device only


class PersistenceBackend(ABC):
    """Unified interface over server and device storage."""

    mode: BackendMode

    @property
    def is_remote(self) -> bool:
        return self.mode is BackendMode.REMOTE

    @abstractmethod
    async def load(self) -> List[LineItem]:
        """Read the whole persisted cart."""

    @abstractmethod
    async def save(self, items: List[LineItem]) -> None:
        """Replace the whole persisted cart."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete everything persisted for this owner."""


class RemoteBackend(PersistenceBackend):
    """Server cart through the Cart Storage API."""

    mode = BackendMode.REMOTE

    def __init__(self, client: CartStorageClient):
        self.client = client

    async def load(self) -> List[LineItem]:
        return await self.client.get_cart()

    async def save(self, items: List[LineItem]) -> None:
        # An emptied cart is cleared rather than synced as [] so the server
        # can tell "never had a cart" from "intentionally emptied"
        if not items:
            await self.client.clear_cart()
            return
        await self.client.replace_cart(items)

    async def clear(self) -> None:
        await self.client.clear_cart()


class LocalBackend(PersistenceBackend):
    """Guest cart as one serialized list under a well-known local-storage key."""

    mode = BackendMode.LOCAL

    def __init__(self, storage: LocalStorage, key: str = LOCAL_STORAGE_CART_KEY):
        self.storage = storage
        self.key = key

    async def load(self) -> List[LineItem]:
        return self.read()

    async def save(self, items: List[LineItem]) -> None:
        self.write(items)

    async def clear(self) -> None:
        self.erase()

    # Local storage needs no event loop round-trip; the scheduler calls these directly.

    def read(self) -> List[LineItem]:
        """
        Read the guest cart. A corrupt payload clears the key and yields an empty cart.
        """
        try:
            raw = self.storage.get_item(self.key)
        except OSError as e:
            logger.warning(f"Local cart unreadable: {e}")
            return []
        if not raw:
            return []
        try:
            return items_from_payload(json.loads(raw))
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            logger.warning(f"Corrupted local cart, clearing it: {e}")
            self.erase()
            return []

    def write(self, items: List[LineItem]) -> None:
        try:
            if items:
                self.storage.set_item(self.key, json.dumps(items_to_payload(items), ensure_ascii=False))
            else:
                self.storage.remove_item(self.key)
        except OSError as e:
            raise CartTransientError(f"Local cart write failed: {e}") from e

    def erase(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except OSError as e:
            logger.warning(f"Failed to clear local cart: {e}")
