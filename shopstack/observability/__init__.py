"""
Observability Package

Centralized setup for the three pillars across every shopstack service:
1. TRACES: OpenTelemetry spans exported over OTLP to Tempo (via Alloy)
2. METRICS: Prometheus collectors scraped from /metrics into Mimir
3. LOGS: Structured JSON logs on stdout, shipped to Loki

Logs carry trace_id/span_id so Grafana can jump from a log line to its trace.
W3C trace context (traceparent/tracestate/baggage) is extracted on every
inbound request and re-injected on every service-to-service call.

FAILURE MODE:
If the collector is unreachable, spans are dropped by the batch processor
and the service keeps serving requests.
"""

from .instrumentation import (
    get_trace_context,
    initialize_observability,
    shutdown_observability,
)
from .logging_config import get_logger, setup_logging
from .middleware import TracingMiddleware
from .propagation import extract_context, inject_context

__all__ = [
    "TracingMiddleware",
    "extract_context",
    "get_logger",
    "get_trace_context",
    "initialize_observability",
    "inject_context",
    "setup_logging",
    "shutdown_observability",
]
