"""
FastAPI application factory shared by every service.

Wires, in order:
- JSON logging (unless `configure_logging` is off)
- observability (tracer provider, propagator)
- CORS (trace headers allowed so the browser can start traces)
- TracingMiddleware (inbound context extraction, logs, metrics)
- exception handlers
- /api/health and /metrics
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable

import structlog
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import Settings
from ..observability import TracingMiddleware, initialize_observability, setup_logging
from ..observability.instrumentation import flush_observability
from ..observability.metrics import metrics_response
from .client import ServiceClient
from .errors import register_exception_handlers

logger = structlog.get_logger(__name__)

CORS_ALLOWED_HEADERS = [
    "Accept",
    "Authorization",
    "Content-Type",
    "X-Request-ID",
    "traceparent",
    "tracestate",
    "baggage",
]

FASTAPI_TELEMETRY_OFF = {"tracing": False, "metrics": False, "logs": False}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """
    Application lifespan manager.

    Startup/shutdown logging, closing outbound clients and flushing spans.
    """
    settings: Settings = app.state.settings
    logger.info(
        "application_startup",
        service=settings.service_name,
        environment=settings.environment,
        tracing_enabled=settings.tracing_enabled,
    )

    yield

    logger.info("application_shutdown", service=settings.service_name)
    for client in app.state.clients:
        await client.aclose()
    flush_observability()


def create_service_app(
    settings: Settings,
    routers: Iterable[APIRouter],
    title: str,
    description: str = "",
    clients: Iterable[ServiceClient] = (),
) -> FastAPI:
    """
    Build a traced FastAPI app for one service.

    Args:
        settings: Settings already bound to this service's name
        routers: The service's routers
        title: OpenAPI title
        clients: Outbound clients closed on shutdown
    """
    if settings.configure_logging:
        setup_logging(settings)
    initialize_observability(settings)

    app = FastAPI(
        title=title,
        description=description,
        version=settings.service_version,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        # One SERVER span per request, from TracingMiddleware. Releases without
        # built-in telemetry keep this in `extra`.
        telemetry=FASTAPI_TELEMETRY_OFF,
    )
    app.state.settings = settings
    app.state.clients = list(clients)

    app.add_middleware(TracingMiddleware, service_name=settings.service_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=CORS_ALLOWED_HEADERS,
        expose_headers=["X-Request-ID", "X-Trace-Id"],
    )
    register_exception_handlers(app)

    @app.get("/api/health", tags=["monitoring"])
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "healthy", "service": settings.service_name}

    @app.get("/metrics", tags=["monitoring"])
    async def metrics():
        """Prometheus metrics endpoint."""
        return metrics_response()

    for router in routers:
        app.include_router(router)

    return app
