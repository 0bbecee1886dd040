"""
Supabase Database Service

Catalog access for the Cart Storage API.

Usage:
    from shoecart.services.database import get_database_async

    db = await get_database_async()
    product = await db.get_product_by_id("p-1")
"""

import asyncio
from typing import Dict, Iterable, Optional

from supabase._async.client import AsyncClient

from shoecart.db import get_supabase
from shoecart.logging import get_logger
from shoecart.services.models import Product
from shoecart.services.repositories import ProductRepository

logger = get_logger(__name__)


class Database:
    """Catalog operations over the async Supabase client."""

    def __init__(self, client: AsyncClient):
        """Private constructor. Use Database.create() or get_database_async() instead."""
        self.client = client
        self._products_repo = ProductRepository(self.client)

    @classmethod
    async def create(cls) -> "Database":
        client = await get_supabase()
        return cls(client)

    # ==================== PRODUCT OPERATIONS (delegated) ====================

    async def get_product_by_id(self, product_id: str) -> Optional[Product]:
        return await self._products_repo.get_by_id(product_id)

    async def get_products_by_ids(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        return await self._products_repo.get_many(product_ids)


# Singleton
_db: Optional[Database] = None
_db_lock: Optional[asyncio.Lock] = None


def _get_lock() -> asyncio.Lock:
    global _db_lock
    if _db_lock is None:
        _db_lock = asyncio.Lock()
    return _db_lock


async def get_database_async() -> Database:
    """Get database instance with lazy async initialization."""
    global _db
    if _db is not None:
        return _db

    async with _get_lock():
        # Double-check after acquiring lock
        if _db is None:
            logger.info("Initializing async Supabase client...")
            _db = await Database.create()
            logger.info("Async Supabase client initialized successfully")
    return _db


def reset_database() -> None:
    """Forget the singleton (tests, shutdown)."""
    global _db
    _db = None
