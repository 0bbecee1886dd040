"""Cart engine configuration (environment driven)."""
import os

# Base URL of the storefront; the Cart Storage API lives under /api/cart
CART_API_URL = os.environ.get("CART_API_URL", "http://localhost:3000")

# Seconds before an outbound cart request is abandoned
CART_HTTP_TIMEOUT = float(os.environ.get("CART_HTTP_TIMEOUT", "10"))

# Trailing-edge debounce window for full-list sync
CART_SYNC_DEBOUNCE_MS = int(os.environ.get("CART_SYNC_DEBOUNCE_MS", "300"))

# Attempts for idempotent reads (initial load, merge fetch, price lookup)
CART_STORAGE_RETRIES = int(os.environ.get("CART_STORAGE_RETRIES", "3"))

# Guest carts live in a JSON file on the device
CART_LOCAL_STORAGE_PATH = os.environ.get(
    "CART_LOCAL_STORAGE_PATH",
    os.path.join(os.path.expanduser("~"), ".shoecart", "storage.json"),
)

# Key of the guest cart inside local storage
LOCAL_STORAGE_CART_KEY = "cart"

# Practical cap for a single line item
CART_MAX_QUANTITY = int(os.environ.get("CART_MAX_QUANTITY", "100"))

# Shoe size domain (EU sizes, kids to large adult)
MIN_SIZE = 16
MAX_SIZE = 50

# Server-side cart TTL in Redis (seconds)
CART_TTL_SECONDS = int(os.environ.get("CART_TTL_SECONDS", str(60 * 60 * 24 * 30)))
