"""OpenTelemetry bootstrap."""

from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

_TRACING_CONFIGURED = False


def configure_tracing(*, service_name: str) -> bool:
    """Install an OTLP span exporter when an endpoint is configured.

    Without ``OTEL_EXPORTER_OTLP_ENDPOINT`` (or the traces-specific variant)
    this is a no-op and spans stay non-recording. Returns whether an exporter
    was installed.
    """

    global _TRACING_CONFIGURED
    if _TRACING_CONFIGURED:
        return False

    _TRACING_CONFIGURED = True
    if (os.getenv("OTEL_TRACES_EXPORTER") or "").strip().lower() == "none":
        return False

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT") or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        return False

    resolved_service_name = (os.getenv("OTEL_SERVICE_NAME") or service_name).strip()
    if not resolved_service_name:
        raise RuntimeError("service_name must be a non-empty string")

    provider = TracerProvider(resource=Resource.create({"service.name": resolved_service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    return True


def shutdown_tracing() -> None:
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()


__all__ = ["configure_tracing", "shutdown_tracing"]
