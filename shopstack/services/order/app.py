"""Order service application."""
from typing import Optional

import httpx
from fastapi import FastAPI

from ...common.app import create_service_app
from ...common.client import ServiceClient
from ...config import Settings, get_settings
from .routes import order_router
from .store import OrderRepository

SERVICE_NAME = "order-service"


def create_order_app(
    settings: Optional[Settings] = None,
    cart_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = (settings or get_settings()).for_service(SERVICE_NAME)
    cart_client = ServiceClient("cart-service", settings.cart_service_url, settings, transport=cart_transport)

    app = create_service_app(
        settings,
        routers=[order_router],
        title="Order Service",
        description="Checkout and order history",
        clients=[cart_client],
    )
    app.state.orders = OrderRepository(settings.data_dir / "orders.json")
    app.state.cart_client = cart_client
    return app
