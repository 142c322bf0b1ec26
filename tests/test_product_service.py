"""Tests for the product service."""
import random

import pytest
from httpx import AsyncClient

from shopstack.services.product.catalog import DEFAULT_PRODUCTS


class TestProductRoutes:
    @pytest.mark.asyncio
    async def test_list_requires_token(self, product_client: AsyncClient) -> None:
        response = await product_client.get("/api/products")

        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header required"}

    @pytest.mark.asyncio
    async def test_list_returns_seeded_catalog(self, product_client: AsyncClient, auth_headers, tmp_path) -> None:
        response = await product_client.get("/api/products", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == DEFAULT_PRODUCTS
        assert (tmp_path / "products.json").exists()

    @pytest.mark.asyncio
    async def test_get_product(self, product_client: AsyncClient, auth_headers) -> None:
        response = await product_client.get("/api/products/2", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Smartphone"
        assert response.json()["price"] == 799.99

    @pytest.mark.asyncio
    async def test_get_unknown_product(self, product_client: AsyncClient, auth_headers) -> None:
        response = await product_client.get("/api/products/42", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Product not found"}

    @pytest.mark.asyncio
    async def test_by_category(self, product_client: AsyncClient, auth_headers) -> None:
        response = await product_client.get("/api/products/category/Electronics", headers=auth_headers)

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_unknown_category(self, product_client: AsyncClient, auth_headers) -> None:
        response = await product_client.get("/api/products/category/Books", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "No products found in this category"}

    @pytest.mark.asyncio
    async def test_availability_follows_configured_ratio(
        self, product_client: AsyncClient, product_app, auth_headers
    ) -> None:
        product_app.state.rng = random.Random(0)
        expected = random.Random(0)

        for _ in range(5):
            response = await product_client.get("/api/products/1/availability", headers=auth_headers)
            assert response.status_code == 200
            assert response.json() == {"available": expected.random() < 0.7}

    @pytest.mark.asyncio
    async def test_availability_of_unknown_product(self, product_client: AsyncClient, auth_headers) -> None:
        response = await product_client.get("/api/products/42/availability", headers=auth_headers)

        assert response.status_code == 404


class TestInternalVerify:
    @pytest.mark.asyncio
    async def test_verify_needs_no_token(self, product_client: AsyncClient) -> None:
        response = await product_client.get("/api/internal/products/3/verify")

        assert response.status_code == 200
        body = response.json()
        assert body["exists"] is True
        assert body["product"]["name"] == "Headphones"

    @pytest.mark.asyncio
    async def test_verify_unknown_product(self, product_client: AsyncClient) -> None:
        response = await product_client.get("/api/internal/products/42/verify")

        assert response.status_code == 404
        assert response.json() == {"exists": False}

    @pytest.mark.asyncio
    async def test_server_span_named_after_route(self, product_client: AsyncClient, span_exporter) -> None:
        await product_client.get("/api/internal/products/1/verify")

        names = [s.name for s in span_exporter.get_finished_spans()]
        assert "GET /api/internal/products/{product_id}/verify" in names
        assert "verify_product" in names
