"""
Prometheus metrics for the shopstack services.

Tracks:
- HTTP request counts and latency per service/handler
- Service-to-service calls (feeds the service graph)
- Logins, cart operations, orders and todo operations

Labels stay low-cardinality: route templates, never user or order ids.
"""
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["service", "handler", "method", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["service", "handler", "method", "status"],
)

# Service graph
service_graph_requests_total = Counter(
    "traces_service_graph_request_total",
    "Total number of requests between services",
    ["client", "server"],
)

upstream_request_duration_seconds = Histogram(
    "upstream_request_duration_seconds",
    "Outbound service call duration in seconds",
    ["client", "server", "method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# Auth
auth_logins_total = Counter(
    "auth_logins_total",
    "Login attempts",
    ["outcome"],  # success, invalid_credentials
)

# Cart
cart_operations_total = Counter(
    "cart_operations_total",
    "Cart mutations",
    ["operation"],  # add, update, remove, clear
)

cart_active_carts = Gauge(
    "cart_active_carts",
    "Number of carts currently held in memory",
)

# Orders
orders_created_total = Counter(
    "orders_created_total",
    "Orders created at checkout",
)

order_value = Histogram(
    "order_value",
    "Order totals",
    buckets=(10, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

order_status_updates_total = Counter(
    "order_status_updates_total",
    "Order status transitions",
    ["status"],
)

# Todo API
todo_operations_total = Counter(
    "todo_operations_total",
    "Todo API operations",
    ["operation"],
)


def record_request(service: str, handler: str, method: str, status: int, duration: float) -> None:
    """Record one handled HTTP request."""
    labels = dict(service=service, handler=handler, method=method, status=str(status))
    http_requests_total.labels(**labels).inc()
    http_request_duration_seconds.labels(**labels).observe(duration)


def record_upstream_call(client: str, server: str, method: str, duration: float) -> None:
    """Record one outbound call from `client` to sibling `server`."""
    service_graph_requests_total.labels(client=client, server=server).inc()
    upstream_request_duration_seconds.labels(client=client, server=server, method=method).observe(
        duration
    )


def metrics_response() -> Response:
    """Prometheus exposition of the default registry."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
