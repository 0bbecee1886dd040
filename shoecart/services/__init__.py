"""Server-side services: catalog access and Redis cart storage."""
