"""Tests for JSON log formatting and trace correlation."""
import json
import logging

import structlog
from opentelemetry import trace

from shopstack.config import Settings
from shopstack.observability.logging_config import CorrelationJsonFormatter, setup_logging
from shopstack.observability.propagation import format_span_id, format_trace_id


def _formatter() -> CorrelationJsonFormatter:
    return CorrelationJsonFormatter(
        "%(timestamp)s %(level)s %(logger)s %(message)s",
        rename_fields={"message": "msg"},
        service_name="cart-service",
    )


def _record(msg: str = "cart_item_added", **extra) -> logging.LogRecord:
    record = logging.LogRecord("shopstack.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationJsonFormatter:
    def test_adds_trace_ids_inside_span(self, span_exporter) -> None:
        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span("add_to_cart") as span:
            line = json.loads(_formatter().format(_record()))
            ctx = span.get_span_context()

        assert line["trace_id"] == format_trace_id(ctx.trace_id)
        assert line["span_id"] == format_span_id(ctx.span_id)
        assert line["msg"] == "cart_item_added"
        assert line["level"] == "INFO"
        assert line["logger"] == "shopstack.test"
        assert line["service"] == "cart-service"

    def test_no_trace_ids_outside_span(self) -> None:
        line = json.loads(_formatter().format(_record()))

        assert "trace_id" not in line
        assert "span_id" not in line

    def test_extra_fields_are_kept(self) -> None:
        line = json.loads(_formatter().format(_record(user_id="u1", quantity=2)))

        assert line["user_id"] == "u1"
        assert line["quantity"] == 2

    def test_sensitive_values_are_redacted(self) -> None:
        line = json.loads(_formatter().format(_record(password="admin", token="eyJ...")))

        assert line["password"] == "***REDACTED***"
        assert line["token"] == "***REDACTED***"

    def test_service_from_event_wins(self) -> None:
        line = json.loads(_formatter().format(_record(service="product-service")))

        assert line["service"] == "product-service"


class TestSetupLogging:
    def test_structlog_event_renders_as_json_with_trace(self, capsys, span_exporter) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(Settings(_env_file=None, service_name="order-service"))
            capsys.readouterr()

            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span("checkout") as span:
                structlog.get_logger("shopstack.test").info("order_created", order_id="o-1")
                ctx = span.get_span_context()

            lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        event = next(line for line in lines if line["msg"] == "order_created")
        assert event["order_id"] == "o-1"
        assert event["service"] == "order-service"
        assert event["trace_id"] == format_trace_id(ctx.trace_id)
