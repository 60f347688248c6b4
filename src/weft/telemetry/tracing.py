"""OpenTelemetry setup for weft runtimes.

weft instruments itself through the OpenTelemetry API only: the run,
iteration, model-call and tool-call spans and the events attached to them go
nowhere until a TracerProvider is installed. `init_telemetry` installs one
that ships spans to an OTLP collector over gRPC, or to any SpanExporter the
caller hands in (console output, in-memory capture in tests).

OpenTelemetry accepts a single global provider per process, so a second
`init_telemetry` after `shutdown_telemetry` does not re-route spans.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)

DEFAULT_SERVICE_NAME = "weft"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4317"

_provider: Optional[TracerProvider] = None


def init_telemetry(
    service_name: Optional[str] = None,
    otlp_endpoint: Optional[str] = None,
    exporter: Optional[SpanExporter] = None,
) -> TracerProvider:
    """Install the global TracerProvider for weft spans.

    Calling it again while a provider is installed returns that provider.

    Args:
        service_name: Service name on every span (default: OTEL_SERVICE_NAME or "weft")
        otlp_endpoint: Collector endpoint for the OTLP exporter
            (default: OTEL_EXPORTER_OTLP_ENDPOINT or http://localhost:4317)
        exporter: Exporter to use instead of OTLP. Spans reach it as soon as
            they end, without batching.

    Returns:
        The installed provider
    """
    global _provider
    if _provider is not None:
        return _provider

    from .. import __version__

    service_name = service_name or os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME)
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
            "deployment.environment": os.getenv("DEPLOYMENT_ENV", "development"),
        }
    )
    provider = TracerProvider(resource=resource)

    if exporter is None:
        endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT)
        # Flush every second so short runs show up promptly
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=endpoint, insecure=True),
                schedule_delay_millis=1000,
            )
        )
        destination = endpoint
    else:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        destination = type(exporter).__name__

    trace.set_tracer_provider(provider)
    _provider = provider
    logging.info("[weft] Tracing enabled: service=%s, exporter=%s", service_name, destination)
    return provider


def shutdown_telemetry() -> None:
    """Flush pending spans and shut the installed provider down."""
    global _provider
    if _provider is None:
        return

    _provider.shutdown()
    _provider = None
    logging.info("[weft] Tracing shut down")


__all__ = ["init_telemetry", "shutdown_telemetry"]
