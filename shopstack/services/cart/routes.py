"""
Cart service routes.

Adding an item verifies the product with the product service first. The
call goes through ServiceClient, so the product service's spans join this
request's trace and the caller's token is forwarded.
"""
import asyncio
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Header, Request
from opentelemetry import trace

from ...common.auth import UserContext, get_current_user
from ...common.client import ServiceClient
from ...common.errors import NotFoundError, UpstreamServiceError
from ...observability.metrics import cart_operations_total
from .schemas import AddItemRequest, Cart, MessageResponse, UpdateQuantityRequest
from .store import CartStore

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

cart_router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_store(request: Request) -> CartStore:
    return request.app.state.carts


def get_product_client(request: Request) -> ServiceClient:
    return request.app.state.product_client


async def fetch_product(
    client: ServiceClient, product_id: str, authorization: Optional[str]
) -> Optional[Dict[str, Any]]:
    """
    Product record from the product service, or None when it doesn't exist.

    Raises:
        UpstreamServiceError: product service unreachable or failing
    """
    response = await client.get(
        f"/api/internal/products/{product_id}/verify", authorization=authorization
    )
    if response.status_code == 404:
        return None
    if response.status_code != 200:
        raise UpstreamServiceError(
            "Failed to verify product",
            service=client.target_service,
            upstream_status=response.status_code,
        )
    return response.json().get("product")


async def _refresh_item(client: ServiceClient, item: Dict[str, Any], authorization: Optional[str]) -> None:
    try:
        product = await fetch_product(client, item["productId"], authorization)
    except UpstreamServiceError as e:
        logger.warning("cart_item_refresh_failed", product_id=item["productId"], error=e.message)
        return
    if product is not None:
        item["price"] = product["price"]
        item["productName"] = product["name"]


@cart_router.get("/{user_id}", response_model=Cart)
async def get_cart(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    carts: CartStore = Depends(get_store),
    products: ServiceClient = Depends(get_product_client),
    user: UserContext = Depends(get_current_user),
):
    """The user's cart with names/prices refreshed from the catalog."""
    with tracer.start_as_current_span("get_cart") as span:
        span.set_attribute("user.id", user_id)

        cart = await carts.get(user_id)
        if cart is None:
            return {"userId": user_id, "items": []}

        await asyncio.gather(*(_refresh_item(products, item, authorization) for item in cart["items"]))
        span.set_attribute("cart.items", len(cart["items"]))
        return cart


@cart_router.post("/{user_id}/items", response_model=Cart)
async def add_item(
    user_id: str,
    payload: AddItemRequest,
    authorization: Optional[str] = Header(default=None),
    carts: CartStore = Depends(get_store),
    products: ServiceClient = Depends(get_product_client),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("add_to_cart") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("product.id", payload.product_id)
        span.set_attribute("quantity", payload.quantity)

        product = await fetch_product(products, payload.product_id, authorization)
        if product is None:
            logger.info("cart_item_rejected", user_id=user_id, product_id=payload.product_id)
            raise NotFoundError("Product not found")

        span.set_attribute("price", product["price"])
        cart = await carts.upsert_item(
            user_id,
            {
                "productId": payload.product_id,
                "quantity": payload.quantity,
                "price": product["price"],
                "productName": product["name"],
            },
        )

        cart_operations_total.labels(operation="add").inc()
        logger.info(
            "cart_item_added",
            user_id=user_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
        )
        return cart


@cart_router.put("/{user_id}/items/{product_id}", response_model=Cart)
async def update_item(
    user_id: str,
    product_id: str,
    payload: UpdateQuantityRequest,
    carts: CartStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("update_cart_item") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("product.id", product_id)
        span.set_attribute("quantity", payload.quantity)

        cart = await carts.set_quantity(user_id, product_id, payload.quantity)
        cart_operations_total.labels(operation="update").inc()
        logger.info("cart_item_updated", user_id=user_id, product_id=product_id, quantity=payload.quantity)
        return cart


@cart_router.delete("/{user_id}/items/{product_id}", response_model=Cart)
async def remove_item(
    user_id: str,
    product_id: str,
    carts: CartStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("remove_from_cart") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("product.id", product_id)

        cart = await carts.remove_item(user_id, product_id)
        cart_operations_total.labels(operation="remove").inc()
        logger.info("cart_item_removed", user_id=user_id, product_id=product_id)
        return cart


@cart_router.delete("/{user_id}", response_model=MessageResponse)
async def clear_cart(
    user_id: str,
    carts: CartStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("clear_cart") as span:
        span.set_attribute("user.id", user_id)

        existed = await carts.clear(user_id)
        cart_operations_total.labels(operation="clear").inc()
        logger.info("cart_cleared", user_id=user_id, had_cart=existed)
        return MessageResponse(message="Cart cleared")
