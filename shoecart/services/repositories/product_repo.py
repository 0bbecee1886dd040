"""Product Repository - catalog lookups used by the cart."""
from typing import Dict, Iterable, Optional

from .base import BaseRepository
from shoecart.services.models import Product


class ProductRepository(BaseRepository):
    """Product database operations."""

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        """Get product by ID."""
        result = await self.client.table("products").select("*").eq("id", product_id).execute()

        if not result.data:
            return None

        return Product(**result.data[0])

    async def get_many(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        """Get several products in one query, keyed by ID. Unknown IDs are absent."""
        ids = list(dict.fromkeys(str(pid) for pid in product_ids if pid))
        if not ids:
            return {}

        result = await self.client.table("products").select("*").in_("id", ids).execute()
        return {str(p["id"]): Product(**p) for p in result.data or []}
