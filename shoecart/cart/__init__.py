"""Cart package: models, store, persistence and the session facade."""
from .models import ALL_SIZES, LineItem, ProductSnapshot, merge_items
from .store import CartStore
from .client import CartStorageClient
from .backends import BackendMode, LocalBackend, PersistenceBackend, RemoteBackend
from .reconciler import PersistenceReconciler, ReconcilerState
from .scheduler import SyncScheduler
from .session import CartSession

__all__ = [
    "ALL_SIZES",
    "LineItem",
    "ProductSnapshot",
    "merge_items",
    "CartStore",
    "CartStorageClient",
    "BackendMode",
    "LocalBackend",
    "PersistenceBackend",
    "RemoteBackend",
    "PersistenceReconciler",
    "ReconcilerState",
    "SyncScheduler",
    "CartSession",
]
