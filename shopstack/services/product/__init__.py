"""Product service: catalog, availability, internal verification."""
from .app import SERVICE_NAME, create_product_app

__all__ = ["SERVICE_NAME", "create_product_app"]
