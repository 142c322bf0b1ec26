"""
The shopstack services and how to launch them.

Each entry names the app factory (as a uvicorn import string, so --reload
works) and the service's default port.
"""
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ServiceSpec:
    name: str
    service_name: str
    factory: str
    port: int
    description: str


SERVICES: Dict[str, ServiceSpec] = {
    spec.name: spec
    for spec in (
        ServiceSpec(
            "auth", "auth-service", "shopstack.services.auth:create_auth_app", 3001,
            "Login, token verification, logout",
        ),
        ServiceSpec(
            "product", "product-service", "shopstack.services.product:create_product_app", 3002,
            "Product catalog",
        ),
        ServiceSpec(
            "cart", "cart-service", "shopstack.services.cart:create_cart_app", 3003,
            "In-memory shopping carts",
        ),
        ServiceSpec(
            "order", "order-service", "shopstack.services.order:create_order_app", 3004,
            "Checkout and order history",
        ),
        ServiceSpec(
            "todo", "todo-api", "shopstack.services.todo:create_todo_app", 8000,
            "Standalone todo CRUD API",
        ),
    )
}
