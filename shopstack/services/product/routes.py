"""
Product service routes.

Public routes require a bearer token. The internal verify route is called by
the cart service and carries the caller's trace context, so its server span
joins the cart's trace.
"""
import random
from typing import List

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace

from ...common.auth import UserContext, get_current_user
from ...common.errors import NotFoundError
from .catalog import ProductCatalog
from .schemas import AvailabilityResponse, Product, VerifyProductResponse

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

product_router = APIRouter(prefix="/api/products", tags=["products"])
internal_router = APIRouter(prefix="/api/internal/products", tags=["internal"])


def get_catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


@product_router.get("", response_model=List[Product])
async def list_products(
    catalog: ProductCatalog = Depends(get_catalog),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("fetch_products") as span:
        products = await catalog.list()
        span.set_attribute("products.count", len(products))
        logger.info("products_listed", count=len(products))
        return products


@product_router.get("/category/{category}", response_model=List[Product])
async def products_by_category(
    category: str,
    catalog: ProductCatalog = Depends(get_catalog),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("fetch_products_by_category") as span:
        span.set_attribute("product.category", category)
        products = await catalog.by_category(category)
        span.set_attribute("products.count", len(products))
        if not products:
            raise NotFoundError("No products found in this category")
        return products


@product_router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    catalog: ProductCatalog = Depends(get_catalog),
    user: UserContext = Depends(get_current_user),
):
    with tracer.start_as_current_span("fetch_product") as span:
        span.set_attribute("product.id", product_id)
        product = await catalog.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product


@product_router.get("/{product_id}/availability", response_model=AvailabilityResponse)
async def check_availability(
    product_id: str,
    request: Request,
    catalog: ProductCatalog = Depends(get_catalog),
    user: UserContext = Depends(get_current_user),
):
    """Simulated stock check; the product must exist."""
    with tracer.start_as_current_span("check_availability") as span:
        span.set_attribute("product.id", product_id)
        if await catalog.get(product_id) is None:
            raise NotFoundError("Product not found")

        rng: random.Random = request.app.state.rng
        ratio = request.app.state.settings.product_availability_ratio
        available = rng.random() < ratio
        span.set_attribute("product.available", available)
        logger.info("availability_checked", product_id=product_id, available=available)
        return AvailabilityResponse(available=available)


@internal_router.get("/{product_id}/verify", response_model=VerifyProductResponse)
async def verify_product(
    product_id: str,
    request: Request,
    catalog: ProductCatalog = Depends(get_catalog),
):
    """Existence check for sibling services; no token needed."""
    with tracer.start_as_current_span("verify_product") as span:
        span.set_attribute("product.id", product_id)
        span.set_attribute("caller.service", request.headers.get("x-source-service", "unknown"))

        product = await catalog.get(product_id)
        span.set_attribute("product.exists", product is not None)
        if product is None:
            logger.info("product_verification_failed", product_id=product_id)
            return JSONResponse(status_code=404, content={"exists": False})

        return VerifyProductResponse(exists=True, product=product)
