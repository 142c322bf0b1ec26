"""
OpenTelemetry Instrumentation Setup

Initializes tracing (and optional OTLP metric push) for a shopstack service.

ARCHITECTURAL PATTERN: The "Observability Facade"
Rather than having each service configure OTel directly, every service calls
initialize_observability() from the shared app factory. This means:
- Consistency: all services emit the same resource attributes
- DRY: sampling rate and exporter protocol change in ONE place
- Testing: tests install their own SDK provider and this module reuses it
"""

import logging
import os
from typing import Optional, Tuple

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_INSTANCE_ID,
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from ..config import Settings
from .propagation import format_span_id, format_trace_id, setup_propagation

logger = logging.getLogger(__name__)

_tracer_provider: Optional[TracerProvider] = None
_meter_provider: Optional[MeterProvider] = None


# ============================================================================
# Service Resource Attributes
# ============================================================================
# These labels appear on EVERY span from this service. Tempo's service graph
# and Grafana's "service.name" filter depend on them.
# ============================================================================

def create_resource(settings: Settings) -> Resource:
    """
    Creates an OpenTelemetry Resource with service metadata.

    Resource.create() also merges OTEL_RESOURCE_ATTRIBUTES from the
    environment, so compose files can add attributes without code changes.

    Args:
        settings: Service settings (name, version, environment)

    Returns:
        OpenTelemetry Resource object
    """
    return Resource.create({
        SERVICE_NAME: settings.service_name,
        SERVICE_VERSION: settings.service_version,
        DEPLOYMENT_ENVIRONMENT: settings.environment,
        SERVICE_INSTANCE_ID: f"{settings.service_name}-{os.getpid()}",
    })


def _build_span_exporter(settings: Settings) -> SpanExporter:
    """OTLP span exporter for the configured transport."""
    if settings.otlp_protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True)

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(endpoint=f"{settings.otlp_endpoint.rstrip('/')}/v1/traces")


def _build_metric_exporter(settings: Settings):
    if settings.otlp_protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

        return OTLPMetricExporter(endpoint=settings.otlp_endpoint, insecure=True)

    from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter

    return OTLPMetricExporter(endpoint=f"{settings.otlp_endpoint.rstrip('/')}/v1/metrics")


# ============================================================================
# TRACING SETUP
# ============================================================================

def setup_tracing(settings: Settings) -> TracerProvider:
    """
    Installs the global TracerProvider for this process.

    HOW IT WORKS:
    1. Middleware and handlers call `tracer.start_as_current_span(...)`
    2. The SDK records the span (start/end time, attributes, parent)
    3. BatchSpanProcessor buffers spans and exports them in the background
    4. The OTLP exporter ships batches to Tempo (directly or through Alloy)

    Sampling is parent-based: if the caller sampled the trace we sample too,
    root spans are sampled at `trace_sample_rate`.

    If an SDK provider is already installed (tests, or a second service in
    the same process) it is reused; OTel refuses to replace it anyway.

    FAILURE MODE:
    If the exporter can't be built, the provider is still installed without
    an exporter. Spans are created (so trace IDs still reach the logs) but
    are never shipped.

    Args:
        settings: Service settings

    Returns:
        The active TracerProvider
    """
    global _tracer_provider

    current = trace.get_tracer_provider()
    if isinstance(current, TracerProvider):
        logger.debug("Tracer provider already configured, reusing it")
        return current

    provider = TracerProvider(
        resource=create_resource(settings),
        sampler=ParentBased(TraceIdRatioBased(settings.trace_sample_rate)),
    )

    try:
        provider.add_span_processor(BatchSpanProcessor(_build_span_exporter(settings)))
        logger.info(
            f"Tracing initialized: {settings.service_name} -> "
            f"{settings.otlp_endpoint} ({settings.otlp_protocol})"
        )
    except Exception as e:
        logger.warning(f"Failed to create OTLP span exporter: {e}. Traces will be discarded.")

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


# ============================================================================
# METRICS SETUP
# ============================================================================

def setup_metrics(settings: Settings) -> metrics.Meter:
    """
    Optionally pushes OTel metrics to the collector.

    Prometheus collectors (observability.metrics) are always exposed on
    /metrics for pull-based scraping. OTLP push is opt-in through
    `metrics_export_enabled`; without it the global no-op meter is returned.
    """
    global _meter_provider

    if settings.metrics_export_enabled and _meter_provider is None:
        try:
            reader = PeriodicExportingMetricReader(
                _build_metric_exporter(settings), export_interval_millis=10000
            )
            _meter_provider = MeterProvider(
                resource=create_resource(settings), metric_readers=[reader]
            )
            metrics.set_meter_provider(_meter_provider)
            logger.info(f"Metrics push initialized: {settings.service_name} -> {settings.otlp_endpoint}")
        except Exception as e:
            logger.warning(f"Failed to create OTLP metric exporter: {e}")

    return metrics.get_meter("shopstack")


# ============================================================================
# HELPER: Get current trace context
# ============================================================================

def get_trace_context() -> dict:
    """
    Extract current trace ID and span ID for correlation.

    Example:
        logger.error("checkout_failed", **get_trace_context())

    Returns:
        Dict with trace_id and span_id (or empty if no active trace)
    """
    ctx = trace.get_current_span().get_span_context()

    if ctx.is_valid:
        return {
            "trace_id": format_trace_id(ctx.trace_id),
            "span_id": format_span_id(ctx.span_id),
        }
    return {}


# ============================================================================
# INITIALIZATION / SHUTDOWN
# ============================================================================

def initialize_observability(settings: Settings) -> Tuple[trace.Tracer, metrics.Meter]:
    """
    One-line setup for all observability.

    Usage:
        tracer, meter = initialize_observability(settings.for_service("cart-service"))

    Returns:
        (tracer, meter) tuple for creating custom spans/metrics
    """
    setup_propagation()

    if settings.tracing_enabled:
        setup_tracing(settings)

    meter = setup_metrics(settings)
    return trace.get_tracer(settings.service_name), meter


def flush_observability(timeout_millis: int = 5000) -> None:
    """Export buffered spans without tearing the provider down."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.force_flush(timeout_millis)


def shutdown_observability() -> None:
    """Flush and shut down the providers this module installed."""
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None
    if _meter_provider is not None:
        _meter_provider.shutdown()
        _meter_provider = None
    logger.info("Observability shut down")
