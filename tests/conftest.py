"""
Pytest configuration and fixtures.

Services are wired to each other in-process: the cart app's product client
uses an httpx ASGITransport around the product app, and the order app's cart
client wraps the cart app. One SDK tracer provider with an in-memory
exporter captures the spans of every service.
"""
import random
from typing import Any, AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from shopstack.common.auth import issue_token
from shopstack.config import Settings
from shopstack.services.auth import create_auth_app
from shopstack.services.cart import create_cart_app
from shopstack.services.order import create_order_app
from shopstack.services.product import create_product_app
from shopstack.services.todo import create_todo_app

_exporter = InMemorySpanExporter()
_provider = TracerProvider()
_provider.add_span_processor(SimpleSpanProcessor(_exporter))
trace.set_tracer_provider(_provider)


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """Finished spans of the current test."""
    _exporter.clear()
    return _exporter


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing every store at a temp dir, with no exporter."""
    return Settings(
        _env_file=None,
        environment="test",
        log_level="DEBUG",
        configure_logging=False,
        tracing_enabled=False,
        data_dir=tmp_path,
        todo_database_url="sqlite://",
        jwt_secret="test-secret",
        upstream_max_attempts=2,
        upstream_retry_backoff=0,
    )


@pytest.fixture
def token(test_settings: Settings) -> str:
    return issue_token("admin", "session-123", test_settings)


@pytest.fixture
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def product_app(test_settings: Settings) -> FastAPI:
    return create_product_app(test_settings, rng=random.Random(7))


@pytest.fixture
def cart_app(test_settings: Settings, product_app: FastAPI) -> FastAPI:
    return create_cart_app(test_settings, product_transport=httpx.ASGITransport(app=product_app))


@pytest.fixture
def order_app(test_settings: Settings, cart_app: FastAPI) -> FastAPI:
    return create_order_app(test_settings, cart_transport=httpx.ASGITransport(app=cart_app))


async def _client_for(app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    for service_client in app.state.clients:
        await service_client.aclose()


@pytest_asyncio.fixture
async def auth_client(test_settings: Settings) -> AsyncGenerator[AsyncClient, Any]:
    async for ac in _client_for(create_auth_app(test_settings)):
        yield ac


@pytest_asyncio.fixture
async def product_client(product_app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    async for ac in _client_for(product_app):
        yield ac


@pytest_asyncio.fixture
async def cart_client(cart_app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    async for ac in _client_for(cart_app):
        yield ac


@pytest_asyncio.fixture
async def order_client(order_app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    async for ac in _client_for(order_app):
        yield ac


@pytest_asyncio.fixture
async def todo_client(test_settings: Settings) -> AsyncGenerator[AsyncClient, Any]:
    async for ac in _client_for(create_todo_app(test_settings)):
        yield ac
