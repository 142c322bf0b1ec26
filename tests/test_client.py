"""Tests for the traced service-to-service client."""
import httpx
import pytest
from opentelemetry import trace
from opentelemetry.trace import SpanKind, StatusCode

from shopstack.common.client import ServiceClient
from shopstack.common.errors import UpstreamServiceError
from shopstack.observability.propagation import format_span_id, format_trace_id, setup_propagation


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def _flaky(failures: int):
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] <= failures:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"ok": True})

    return handler


@pytest.fixture(autouse=True)
def _propagator() -> None:
    setup_propagation()


class TestServiceClient:
    @pytest.mark.asyncio
    async def test_injects_trace_context_and_forwards_auth(self, test_settings, span_exporter) -> None:
        transport = RecordingTransport(lambda r: httpx.Response(200, json={"exists": True}))
        client = ServiceClient(
            "product-service", "http://product-service:3002", test_settings.for_service("cart-service"),
            transport=transport,
        )

        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span("add_to_cart") as parent:
            response = await client.get("/api/internal/products/1/verify", authorization="Bearer abc")
            parent_ctx = parent.get_span_context()
        await client.aclose()

        assert response.status_code == 200
        (request,) = transport.requests
        assert request.headers["authorization"] == "Bearer abc"
        assert request.headers["x-source-service"] == "cart-service"

        client_span = next(s for s in span_exporter.get_finished_spans() if s.kind == SpanKind.CLIENT)
        assert client_span.name == "GET product-service"
        assert client_span.parent.span_id == parent_ctx.span_id
        assert client_span.attributes["peer.service"] == "product-service"
        assert client_span.attributes["http.status_code"] == 200

        _, trace_id, span_id, _ = request.headers["traceparent"].split("-")
        assert trace_id == format_trace_id(parent_ctx.trace_id)
        assert span_id == format_span_id(client_span.context.span_id)

    @pytest.mark.asyncio
    async def test_non_2xx_is_returned_not_raised(self, test_settings) -> None:
        client = ServiceClient(
            "product-service", "http://product", test_settings,
            transport=httpx.MockTransport(lambda r: httpx.Response(404, json={"exists": False})),
        )

        response = await client.get("/api/internal/products/99/verify")
        await client.aclose()

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_idempotent_call_retries_transport_errors(self, test_settings) -> None:
        transport = RecordingTransport(_flaky(failures=1))
        client = ServiceClient("cart-service", "http://cart", test_settings, transport=transport)

        response = await client.get("/api/cart/u1")
        await client.aclose()

        assert response.status_code == 200
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_upstream_error(self, test_settings, span_exporter) -> None:
        transport = RecordingTransport(_flaky(failures=10))
        client = ServiceClient("cart-service", "http://cart", test_settings, transport=transport)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.delete("/api/cart/u1")
        await client.aclose()

        assert exc_info.value.status_code == 502
        assert exc_info.value.service == "cart-service"
        assert len(transport.requests) == test_settings.upstream_max_attempts

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR

    @pytest.mark.asyncio
    async def test_post_is_not_retried(self, test_settings) -> None:
        transport = RecordingTransport(_flaky(failures=1))
        client = ServiceClient("order-service", "http://order", test_settings, transport=transport)

        with pytest.raises(UpstreamServiceError):
            await client.request("POST", "/api/orders/checkout/u1", json={})
        await client.aclose()

        assert len(transport.requests) == 1
