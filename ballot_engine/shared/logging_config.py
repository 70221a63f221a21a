# ballot_engine/shared/logging_config.py
import sys
import logging

import structlog
from opentelemetry import trace

from ballot_engine.shared.config import settings


def add_open_telemetry_spans(_, __, event_dict):
    """
    Processor to inject the current TraceID and SpanID into the log entry.
    This links the log to the distributed trace in tools like Jaeger.
    """
    span = trace.get_current_span()
    if not span.is_recording():
        event_dict["trace_id"] = None
        event_dict["span_id"] = None
        return event_dict

    ctx = span.get_span_context()
    event_dict["trace_id"] = format(ctx.trace_id, "032x")
    event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def configure_logging():
    """
    Configures structlog and the standard logging library to emit
    structured JSON logs (Production) or colored text logs (Development).
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        add_open_telemetry_spans,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Uvicorn, httpx and tenacity log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=settings.LOG_LEVEL.upper(),
    )
