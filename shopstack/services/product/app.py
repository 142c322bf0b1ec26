"""Product service application."""
import random
from typing import Optional

from fastapi import FastAPI

from ...common.app import create_service_app
from ...config import Settings, get_settings
from .catalog import ProductCatalog
from .routes import internal_router, product_router

SERVICE_NAME = "product-service"


def create_product_app(
    settings: Optional[Settings] = None, rng: Optional[random.Random] = None
) -> FastAPI:
    """
    Args:
        settings: Base settings; relabelled with this service's name
        rng: Source for the availability simulation (seed it in tests)
    """
    settings = (settings or get_settings()).for_service(SERVICE_NAME)

    app = create_service_app(
        settings,
        routers=[product_router, internal_router],
        title="Product Service",
        description="Product catalog and service-to-service product verification",
    )
    app.state.catalog = ProductCatalog(settings.data_dir / "products.json")
    app.state.rng = rng or random.Random()
    return app
