"""Order service: checkout and order history."""
from .app import SERVICE_NAME, create_order_app

__all__ = ["SERVICE_NAME", "create_order_app"]
