"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import Mock, AsyncMock

import httpx

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("CART_STORAGE_RETRIES", "2")

from shoecart.cart import CartSession, CartStorageClient, ProductSnapshot
from shoecart.cart.notifications import Notifier
from shoecart.cart.storage import MemoryStorage


class FakeRedis:
    """Async stand-in for the Upstash client (get / set / delete only)."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return "OK"

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def sneaker():
    """Discounted sneaker, size 42"""
    return ProductSnapshot(
        id="A", price=5990, old_price=7990, brand_name="Nike", model="Air Max 90", selected_size=42
    )


@pytest.fixture
def socks():
    """Sizeless accessory"""
    return ProductSnapshot(id="B", price=490, brand_name="Puma", model="Socks 3-pack")


@pytest.fixture
def sample_product_row():
    """Catalog row as Supabase returns it"""
    return {
        "id": "A",
        "brand_id": "brand-1",
        "brand_name": "Nike",
        "model": "Air Max 90",
        "description": "Classic runner",
        "price": 5990,
        "old_price": 7990,
        "image": "https://cdn.test/a.jpg",
        "category_id": "sneakers",
        "is_new": False,
        "is_on_sale": True,
        "created_at": "2025-01-01T00:00:00Z",
        "updated_at": "2025-01-01T00:00:00Z",
    }


@pytest.fixture
def mock_client():
    """CartStorageClient with every endpoint mocked (empty server cart)."""
    client = Mock(spec=CartStorageClient)
    client.get_cart = AsyncMock(return_value=[])
    client.replace_cart = AsyncMock(return_value=None)
    client.add_item = AsyncMock(return_value=None)
    client.remove_item = AsyncMock(return_value=None)
    client.update_item = AsyncMock(return_value=None)
    client.clear_cart = AsyncMock(return_value=None)
    client.get_price = AsyncMock(return_value=None)
    client.aclose = AsyncMock(return_value=None)
    return client


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def make_session(mock_client, storage, notifier):
    """Factory for sessions sharing the mocked client, storage and notifier."""
    def _make(debounce_ms: int = 20) -> CartSession:
        return CartSession(mock_client, storage=storage, notifier=notifier, debounce_ms=debounce_ms)
    return _make


@pytest.fixture
def make_http_client():
    """Factory for a CartStorageClient talking to an httpx.MockTransport handler."""
    created = []

    def _make(handler, session_token="token-123") -> CartStorageClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://shop.test")
        created.append(http_client)
        return CartStorageClient(base_url="http://shop.test", session_token=session_token, http_client=http_client)

    return _make
