"""
Where: services/lamux/core/otel.py
What: OpenTelemetry SDK setup for the proxy (exporter, resource, propagators).
Why: Tracing stays a no-op until a provider is installed from config.
"""

import logging
from typing import Callable
from urllib.parse import urlparse

from opentelemetry import propagate, trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from ..config import VERSION, LamuxConfig

logger = logging.getLogger("lamux.otel")

TRACER_NAME = "lamux"

# Proxy tracer: resolves to the global provider once setup_otel_sdk installs one.
tracer = trace.get_tracer(TRACER_NAME)


def _http_traces_url(endpoint: str, insecure: bool) -> str:
    """Turn `host:port` into the OTLP/HTTP traces URL."""
    if "://" not in endpoint:
        endpoint = f"{'http' if insecure else 'https'}://{endpoint}"
    parsed = urlparse(endpoint)
    if parsed.path in ("", "/"):
        endpoint = f"{endpoint.rstrip('/')}/v1/traces"
    return endpoint


def new_trace_exporter(config: LamuxConfig) -> SpanExporter:
    """
    Create the span exporter selected by the trace settings.

    Raises:
        ValueError: unsupported trace protocol
    """
    if config.OTEL_EXPORTER_STDOUT:
        return ConsoleSpanExporter()

    headers = config.trace_headers or None
    protocol = config.OTEL_EXPORTER_OTLP_PROTOCOL
    if protocol == "http/protobuf":
        from opentelemetry.exporter.otlp.proto.http import Compression
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter(
            endpoint=_http_traces_url(
                config.OTEL_EXPORTER_OTLP_ENDPOINT, config.OTEL_EXPORTER_OTLP_INSECURE
            ),
            headers=headers,
            compression=Compression.Gzip,
        )
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter as GrpcSpanExporter,
        )

        return GrpcSpanExporter(
            endpoint=config.OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=config.OTEL_EXPORTER_OTLP_INSECURE,
            headers=headers,
        )
    raise ValueError(f"unsupported trace protocol: {protocol}")


def new_tracer_provider(config: LamuxConfig) -> TracerProvider:
    """Build a TracerProvider with the service resource and configured exporter."""
    resource = Resource.create(
        {
            SERVICE_NAME: config.OTEL_SERVICE_NAME,
            SERVICE_VERSION: VERSION,
        }
    )
    provider = TracerProvider(resource=resource)
    exporter = new_trace_exporter(config)
    if config.OTEL_EXPORTER_OTLP_BATCH:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    else:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider


def setup_otel_sdk(config: LamuxConfig) -> Callable[[], None]:
    """
    Install the global propagator and tracer provider.

    Returns:
        shutdown callable that flushes and closes the provider; a no-op
        when tracing is disabled.
    """
    if not config.trace_enabled:
        return lambda: None

    logger.info(
        "setting up Otel SDK",
        extra={
            "trace_stdout": config.OTEL_EXPORTER_STDOUT,
            "trace_endpoint": config.OTEL_EXPORTER_OTLP_ENDPOINT,
            "trace_protocol": config.OTEL_EXPORTER_OTLP_PROTOCOL,
            "trace_service": config.OTEL_SERVICE_NAME,
        },
    )

    propagate.set_global_textmap(
        CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()])
    )

    provider = new_tracer_provider(config)
    trace.set_tracer_provider(provider)
    return provider.shutdown
