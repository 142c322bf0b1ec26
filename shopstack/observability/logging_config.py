"""
Structured Logging Configuration

Every log line is a JSON object on stdout:

    {"timestamp": "...", "level": "INFO", "logger": "shopstack.services.cart.routes",
     "msg": "cart_item_added", "service": "cart-service",
     "trace_id": "4bf92f3577b34da6a3ce929d0e0e4736", "span_id": "00f067aa0ba902b7",
     "user_id": "...", "product_id": "2"}

trace_id/span_id link the line to its trace: Grafana's Loki datasource turns
trace_id into a Tempo link, and Tempo's "logs for this span" runs the
reverse query.

Application code logs through structlog (event name + key/value pairs).
structlog hands each event to the stdlib logger as msg + extra, and
CorrelationJsonFormatter renders the record as JSON.

FAILURE MODE:
Anything passed as a key ends up in Loki. Sensitive keys are scrubbed
(see CorrelationJsonFormatter.scrub_sensitive_data).
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace
from pythonjsonlogger import jsonlogger

from ..config import Settings
from .propagation import format_span_id, format_trace_id

SENSITIVE_KEYS = ("password", "token", "authorization", "jwt_secret", "secret", "api_key")


class CorrelationJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that injects trace_id and span_id into every log.

    The ids come from the span that is current when the record is emitted,
    so a log written inside a child span (e.g. "verify_product") points at
    that span, not at the request's server span.
    """

    def __init__(self, *args: Any, service_name: str = "unknown", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        """
        Inject custom fields into every log record.

        Args:
            log_record: The dict that will be serialized to JSON
            record: Python LogRecord object
            message_dict: Extra fields from logger.info("msg", extra={...})
        """
        super().add_fields(log_record, record, message_dict)

        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            log_record["trace_id"] = format_trace_id(ctx.trace_id)
            log_record["span_id"] = format_span_id(ctx.span_id)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record.setdefault("service", self.service_name)

        self.scrub_sensitive_data(log_record)

    def scrub_sensitive_data(self, log_record: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the values of sensitive keys before they leave the process."""
        for key in SENSITIVE_KEYS:
            if key in log_record and log_record[key] is not None:
                log_record[key] = "***REDACTED***"
        return log_record


def _app_context_processor(service_name: str, environment: str):
    def add_app_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Add service identity to log events."""
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_app_context


def setup_logging(settings: Settings) -> None:
    """
    Configure structured JSON logging for a service.

    Replaces any handler installed by an earlier call, so it is safe to call
    more than once (tests, or uvicorn reloads).
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            _app_context_processor(settings.service_name, settings.environment),
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        CorrelationJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s",
            rename_fields={"message": "msg"},
            service_name=settings.service_name,
        )
    )

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level)

    # uvicorn's own access log duplicates request_completed
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        environment=settings.environment,
    )


def get_logger(name: Optional[str] = None, **context: Any) -> Any:
    """
    Get a structlog logger with pre-bound context.

        order_logger = get_logger(__name__, order_id=order["id"])
        order_logger.info("order_persisted")
    """
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger
