"""Cart service application."""
from typing import Optional

import httpx
from fastapi import FastAPI

from ...common.app import create_service_app
from ...common.client import ServiceClient
from ...config import Settings, get_settings
from .routes import cart_router
from .store import CartStore

SERVICE_NAME = "cart-service"


def create_cart_app(
    settings: Optional[Settings] = None,
    product_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Args:
        settings: Base settings; relabelled with this service's name
        product_transport: httpx transport for product-service calls
            (tests pass an ASGITransport wrapping the product app)
    """
    settings = (settings or get_settings()).for_service(SERVICE_NAME)
    product_client = ServiceClient(
        "product-service", settings.product_service_url, settings, transport=product_transport
    )

    app = create_service_app(
        settings,
        routers=[cart_router],
        title="Cart Service",
        description="In-memory shopping carts with product verification",
        clients=[product_client],
    )
    app.state.carts = CartStore()
    app.state.product_client = product_client
    return app
