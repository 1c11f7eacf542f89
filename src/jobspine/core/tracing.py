"""OpenTelemetry tracing configuration.

Spans are created through the OpenTelemetry API. Until
:func:`configure_tracing` installs an SDK provider the API hands out
no-op spans, so job code never needs to check whether tracing is on.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from jobspine.core.settings import JobspineSettings, get_settings

TRACER_NAME = "jobspine"


def configure_tracing(settings: JobspineSettings | None = None) -> None:
    """Install an SDK tracer provider exporting to the configured OTLP endpoint."""
    settings = settings or get_settings()

    if not settings.tracing_enabled:
        return

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    resource = Resource.create({"service.name": settings.service_name})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)


def get_tracer(provider: trace.TracerProvider | None = None) -> trace.Tracer:
    """Get the jobspine tracer from ``provider`` or the global provider."""
    if provider is not None:
        return provider.get_tracer(TRACER_NAME)
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
    tracer: trace.Tracer | None = None,
) -> Iterator[trace.Span]:
    """Create a trace span context.

    Exceptions are not recorded automatically; callers that capture errors
    into values set the span status themselves.
    """
    tracer = tracer or get_tracer()
    with tracer.start_as_current_span(
        name,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        yield span
