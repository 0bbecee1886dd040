"""
Cart Storage API client.

Async httpx client for the storefront's /api/cart endpoints plus the
catalog price lookup. HTTP failures are mapped onto the cart error
taxonomy; idempotent reads are retried with tenacity.
"""
from typing import Any, List, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from shoecart.config import CART_API_URL, CART_HTTP_TIMEOUT, CART_STORAGE_RETRIES
from shoecart.errors import (
    CartAuthError,
    CartRejectedError,
    CartTransientError,
    CartValidationError,
    ERROR_PRODUCT_ID_REQUIRED,
)
from shoecart.logging import get_logger
from .models import ALL_SIZES, LineItem, ProductSnapshot, SizeArg, items_from_payload, items_to_payload

logger = get_logger(__name__)

_read_retry = retry(
    stop=stop_after_attempt(CART_STORAGE_RETRIES),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception_type(CartTransientError),
    reraise=True,
)


def _size_field(payload: dict, selected_size: SizeArg) -> dict:
    # An omitted size and an explicit "no size" (None) mean different things to remove/update
    if selected_size is not ALL_SIZES:
        payload["selectedSize"] = selected_size
    return payload


class CartStorageClient:
    """
    Client for the Cart Storage API.

    The caller's identity travels as a bearer session token; the server
    resolves the user from it. Pass an existing httpx.AsyncClient to share
    a connection pool (or a MockTransport in tests).
    """

    def __init__(
        self,
        base_url: str = CART_API_URL,
        session_token: Optional[str] = None,
        timeout: float = CART_HTTP_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session_token = session_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.session_token:
            headers["Authorization"] = f"Bearer {self.session_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            raise CartTransientError(f"{method} {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise CartTransientError(f"{method} {path} failed: {e}") from e

        if response.status_code in (401, 403):
            raise CartAuthError(self._error_message(response), status_code=response.status_code)
        if response.status_code >= 500:
            raise CartTransientError(self._error_message(response), status_code=response.status_code)
        if response.status_code >= 400:
            raise CartRejectedError(self._error_message(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise CartTransientError(f"{method} {path} returned malformed JSON") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return body.get("error") or body.get("detail") or f"HTTP {response.status_code}"
        return f"HTTP {response.status_code}"

    # ==================== CART ====================

    @_read_retry
    async def get_cart(self) -> List[LineItem]:
        """GET /api/cart -> the user's items (empty if they have no cart)."""
        body = await self._request("GET", "/api/cart")
        try:
            return items_from_payload((body or {}).get("items") or [])
        except (ValueError, AttributeError) as e:
            raise CartTransientError(f"Malformed cart payload: {e}") from e

    async def replace_cart(self, items: List[LineItem]) -> None:
        """POST /api/cart: full replace of the persisted cart."""
        await self._request("POST", "/api/cart", json={"items": items_to_payload(items)})

    async def add_item(self, product_id: str, quantity: int = 1, selected_size: Optional[int] = None) -> None:
        """POST /api/cart/add: increment or create one line item."""
        if not product_id:
            raise CartValidationError(ERROR_PRODUCT_ID_REQUIRED)
        payload = _size_field({"productId": product_id, "quantity": quantity}, selected_size)
        await self._request("POST", "/api/cart/add", json=payload)

    async def remove_item(self, product_id: str, selected_size: SizeArg = ALL_SIZES) -> None:
        """POST /api/cart/remove: delete one line item."""
        if not product_id:
            raise CartValidationError(ERROR_PRODUCT_ID_REQUIRED)
        await self._request("POST", "/api/cart/remove", json=_size_field({"productId": product_id}, selected_size))

    async def update_item(self, product_id: str, quantity: int, selected_size: SizeArg = ALL_SIZES) -> None:
        """POST /api/cart/update: set one line item's quantity (<= 0 deletes)."""
        if not product_id:
            raise CartValidationError(ERROR_PRODUCT_ID_REQUIRED)
        payload = _size_field({"productId": product_id, "quantity": quantity}, selected_size)
        await self._request("POST", "/api/cart/update", json=payload)

    async def clear_cart(self) -> None:
        """POST /api/cart/clear."""
        await self._request("POST", "/api/cart/clear")

    # ==================== CATALOG ====================

    @_read_retry
    async def get_price(self, product_id: str) -> Optional[ProductSnapshot]:
        """
        Look up a product's current price and old price.

        Returns:
            A sizeless ProductSnapshot, or None if the product does not exist
        """
        try:
            body = await self._request("GET", "/api/cart/get-price", params={"id": product_id})
        except CartRejectedError as e:
            if e.status_code == 404:
                return None
            raise
        product = (body or {}).get("product")
        if not isinstance(product, dict) or not product.get("id"):
            raise CartTransientError("Malformed price payload")
        return ProductSnapshot.from_dict(product)
