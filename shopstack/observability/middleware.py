"""
Inbound request tracing middleware.

For every request (except health and metrics probes):
1. Extract W3C trace context from the inbound headers
2. Start a SERVER span as a child of the caller's span (or a new root)
3. Bind request/trace ids into the structlog context for every log line
4. Record Prometheus request count/latency
5. Return X-Request-ID and X-Trace-Id so the browser can correlate
"""
import time
import uuid
from typing import Any, Iterable

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .instrumentation import get_trace_context
from .metrics import record_request
from .propagation import extract_context

logger = structlog.get_logger(__name__)

UNTRACED_PATHS = ("/metrics", "/api/health")


def _route_template(request: Request) -> str:
    """Matched route template (e.g. /api/cart/{user_id}), raw path if unmatched."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class TracingMiddleware(BaseHTTPMiddleware):
    """Server-side half of trace propagation plus request logging and metrics."""

    def __init__(self, app: Any, service_name: str, untraced_paths: Iterable[str] = UNTRACED_PATHS):
        super().__init__(app)
        self.service_name = service_name
        self.untraced_paths = frozenset(untraced_paths)

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if request.url.path in self.untraced_paths or request.method == "OPTIONS":
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        parent_context = extract_context(request.headers)
        tracer = trace.get_tracer(self.service_name)
        start_time = time.perf_counter()

        with tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            context=parent_context,
            kind=SpanKind.SERVER,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            span.set_attribute("http.scheme", request.url.scheme)
            span.set_attribute("service.name", self.service_name)
            if request.client:
                span.set_attribute("net.peer.ip", request.client.host)

            trace_ctx = get_trace_context()
            structlog.contextvars.bind_contextvars(
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                **trace_ctx,
            )

            logger.info(
                "request_started",
                client_host=request.client.host if request.client else None,
            )

            try:
                try:
                    response = await call_next(request)
                except Exception as e:
                    duration = time.perf_counter() - start_time
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    record_request(
                        self.service_name, _route_template(request), request.method, 500, duration
                    )
                    logger.error(
                        "request_failed",
                        error=str(e),
                        error_type=type(e).__name__,
                        duration_seconds=duration,
                    )
                    raise

                duration = time.perf_counter() - start_time
                handler = _route_template(request)

                span.update_name(f"{request.method} {handler}")
                span.set_attribute("http.route", handler)
                span.set_attribute("http.status_code", response.status_code)
                if response.status_code >= 500:
                    span.set_status(Status(StatusCode.ERROR))

                response.headers["X-Request-ID"] = request_id
                if trace_ctx:
                    response.headers["X-Trace-Id"] = trace_ctx["trace_id"]

                record_request(self.service_name, handler, request.method, response.status_code, duration)
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_seconds=round(duration, 6),
                )
                return response
            finally:
                structlog.contextvars.clear_contextvars()
