"""
Cart Errors

Exception taxonomy for the cart engine and centralized error messages
for the Cart Storage API (avoids string duplication, SonarQube S1192).
"""

# Auth errors
ERROR_UNAUTHORIZED = "Authorization required"

# Request errors
ERROR_INVALID_JSON = "Invalid JSON payload"
ERROR_INVALID_ITEMS = "Invalid payload: expected a list of cart items"
ERROR_PRODUCT_ID_REQUIRED = "Product ID is required"
ERROR_QUANTITY_REQUIRED = "Product ID and quantity are required"

# Product / cart errors
ERROR_PRODUCT_NOT_FOUND = "Product not found"
ERROR_CART_NOT_FOUND = "Cart not found"
ERROR_ITEM_NOT_IN_CART = "Item not found in cart"

# Storage errors
ERROR_CART_UNAVAILABLE = "Cart service unavailable"
ERROR_CART_UPDATE_FAILED = "Failed to update cart"

# User-facing notifications
MSG_ITEM_ADDED = "Item added to cart"
MSG_ITEM_ADDED_LOCALLY = "Item added to cart (saved on this device)"
MSG_ADD_FAILED = "Could not add item to cart"
MSG_REMOVE_FAILED = "Could not remove item from cart"
MSG_UPDATE_FAILED = "Could not update item quantity"
MSG_CLEAR_FAILED = "Could not clear cart"
MSG_SIGN_IN_REQUIRED = "Cart sync requires sign-in"


class CartError(Exception):
    """Base class for cart engine failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CartValidationError(CartError):
    """Rejected locally: missing product id, unusable quantity."""


class CartTransientError(CartError):
    """Network error, timeout, 5xx or malformed payload. Retried on the next sync."""


class CartAuthError(CartError):
    """401/403 from the storage API. Needs the user to sign in again."""


class CartRejectedError(CartError):
    """Any other 4xx: the server refused the operation."""
