"""Cart service: per-user in-memory carts."""
from .app import SERVICE_NAME, create_cart_app

__all__ = ["SERVICE_NAME", "create_cart_app"]
