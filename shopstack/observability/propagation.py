"""
W3C trace context propagation helpers.

Inbound:  headers -> Context   (extract_context)
Outbound: Context -> headers   (inject_context)

The global propagator carries `traceparent`/`tracestate` (TraceContext) and
`baggage` (W3C Baggage), matching what the browser and the sibling
services send.
"""
from typing import Mapping, MutableMapping, Optional

from opentelemetry import propagate
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.context import Context
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

TRACE_HEADERS = ("traceparent", "tracestate", "baggage")


def setup_propagation() -> None:
    """Install the TraceContext + Baggage propagator globally."""
    propagate.set_global_textmap(
        CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()])
    )


def extract_context(headers: Mapping[str, str]) -> Context:
    """
    Build an OTel Context from inbound request headers.

    Header names are matched case-insensitively. Without a valid
    `traceparent` the returned context has no parent span, so the next span
    started with it becomes a new root.
    """
    carrier = {key.lower(): value for key, value in headers.items() if key.lower() in TRACE_HEADERS}
    return propagate.extract(carrier)


def inject_context(
    headers: MutableMapping[str, str], context: Optional[Context] = None
) -> MutableMapping[str, str]:
    """Write the current (or given) trace context into outbound headers."""
    propagate.inject(headers, context=context)
    return headers


def format_trace_id(trace_id: int) -> str:
    return format(trace_id, "032x")


def format_span_id(span_id: int) -> str:
    return format(span_id, "016x")
