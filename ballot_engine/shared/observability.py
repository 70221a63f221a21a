# ballot_engine/shared/observability.py
import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from ballot_engine import __version__
from ballot_engine.shared.config import settings

logger = logging.getLogger(__name__)


def setup_telemetry(app_name: str = settings.OTEL_SERVICE_NAME):
    """
    Initializes the OpenTelemetry SDK with OTLP export.
    Should be called once at process startup.
    """
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("Telemetry disabled: No OTEL_EXPORTER_OTLP_ENDPOINT configured.")
        return

    logger.info(f"Initializing Telemetry for service: {app_name}")

    resource = Resource.create(attributes={
        "service.name": app_name,
        "deployment.environment": settings.APP_ENV.value,
        "service.version": __version__,
    })

    trace_provider = TracerProvider(resource=resource)
    otlp_exporter = OTLPSpanExporter(endpoint=f"{settings.OTEL_EXPORTER_OTLP_ENDPOINT}/v1/traces")
    trace_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if settings.DEBUG:
        trace_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(trace_provider)


def instrument_fastapi(app: FastAPI):
    """
    Auto-instruments the FastAPI application to trace incoming HTTP requests.
    """
    if settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        FastAPIInstrumentor.instrument_app(app)


def get_tracer(name: str):
    """
    Utility to get a tracer for manual instrumentation in Use Cases.
    Usage:
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span("my_custom_logic"):
            ...
    """
    return trace.get_tracer(name)
