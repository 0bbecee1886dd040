"""
Shoecart Core Module

This package contains the storefront cart components:
- cart: client-side cart engine (store, reconciler, sync scheduler, session)
- db: server clients (Supabase catalog + Redis cart storage)
- routers: Cart Storage API (FastAPI)
- services: money helpers, catalog repository, server cart manager

Note: Imports are lazy so the client-side engine can be used without
the server dependencies being configured.
"""

__all__ = [
    "CartSession",
    "get_supabase",
    "get_redis",
]


def __getattr__(name):
    """Lazy attribute access for clean module loading."""
    if name == "CartSession":
        from shoecart.cart import CartSession
        return CartSession
    elif name == "get_supabase":
        from shoecart.db import get_supabase
        return get_supabase
    elif name == "get_redis":
        from shoecart.db import get_redis
        return get_redis
    raise AttributeError(f"module 'shoecart' has no attribute '{name}'")
