"""
Order service routes.

Checkout pulls the cart from the cart service, which in turn calls the
product service, so one checkout produces a single trace spanning all three.
"""
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, Request, status
from opentelemetry import trace

from ...common.auth import UserContext, get_current_user
from ...common.client import ServiceClient
from ...common.errors import BadRequestError, NotFoundError, ServiceError, UpstreamServiceError
from ...observability import get_logger
from ...observability.metrics import order_status_updates_total, order_value, orders_created_total
from .schemas import Order, StatusUpdateRequest
from .store import OrderRepository

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

order_router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_orders(request: Request) -> OrderRepository:
    return request.app.state.orders


def get_cart_client(request: Request) -> ServiceClient:
    return request.app.state.cart_client


@order_router.post("/checkout/{user_id}", response_model=Order, status_code=status.HTTP_201_CREATED)
async def checkout(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    orders: OrderRepository = Depends(get_orders),
    carts: ServiceClient = Depends(get_cart_client),
    user: UserContext = Depends(get_current_user),
):
    """Turn the user's cart into a pending order and empty the cart."""
    with tracer.start_as_current_span("checkout") as span:
        span.set_attribute("user.id", user_id)

        try:
            response = await carts.get(f"/api/cart/{user_id}", authorization=authorization)
        except UpstreamServiceError as e:
            raise UpstreamServiceError("Failed to fetch cart", service=e.service) from e
        if response.status_code != 200:
            logger.error("cart_fetch_failed", user_id=user_id, upstream_status=response.status_code)
            raise UpstreamServiceError(
                "Failed to fetch cart", service=carts.target_service, upstream_status=response.status_code
            )

        items = response.json().get("items") or []
        if not items:
            raise BadRequestError("Cart is empty")

        order = await orders.create(user_id, items)
        order_logger = get_logger(__name__, user_id=user_id, order_id=order["id"])
        span.set_attribute("order.id", order["id"])
        span.set_attribute("order.total", order["total"])
        span.set_attribute("order.items", len(order["items"]))
        orders_created_total.inc()
        order_value.observe(order["total"])
        order_logger.info("order_created", total=order["total"], items=len(order["items"]))

        try:
            cleared = await carts.delete(f"/api/cart/{user_id}", authorization=authorization)
            if cleared.status_code != 200:
                order_logger.warning("cart_clear_failed", upstream_status=cleared.status_code)
        except ServiceError as e:
            order_logger.warning("cart_clear_failed", error=e.message)

        return order


@order_router.get("/{user_id}", response_model=List[Order])
async def list_orders(
    user_id: str,
    orders: OrderRepository = Depends(get_orders),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("get_orders") as span:
        span.set_attribute("user.id", user_id)
        user_orders = await orders.for_user(user_id)
        span.set_attribute("orders.count", len(user_orders))
        return user_orders


@order_router.get("/{user_id}/{order_id}", response_model=Order)
async def get_order(
    user_id: str,
    order_id: str,
    orders: OrderRepository = Depends(get_orders),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("get_order") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("order.id", order_id)
        order = await orders.get(user_id, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order


@order_router.put("/{order_id}/status", response_model=Order)
async def update_status(
    order_id: str,
    payload: StatusUpdateRequest,
    orders: OrderRepository = Depends(get_orders),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("update_order_status") as span:
        span.set_attribute("order.id", order_id)
        span.set_attribute("order.status", payload.status.value)

        order = await orders.set_status(order_id, payload.status.value)
        order_status_updates_total.labels(status=payload.status.value).inc()
        logger.info("order_status_updated", order_id=order_id, status=payload.status.value)
        return order
