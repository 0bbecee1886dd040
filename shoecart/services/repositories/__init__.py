"""
Repository Pattern for Database Operations

- ProductRepository: catalog lookups for the cart
"""
from .product_repo import ProductRepository

__all__ = [
    "ProductRepository",
]
