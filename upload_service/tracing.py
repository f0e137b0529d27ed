from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.celery import CeleryInstrumentor
from opentelemetry.instrumentation.flask import FlaskInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .config import parse_bool


def _span_exporter():
    endpoint = (os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip()
    if endpoint:
        return OTLPSpanExporter(endpoint=endpoint, insecure=True)
    return ConsoleSpanExporter()


def configure_tracing(app) -> None:
    """
    Installs an OTLP tracer provider and instruments the three places a
    video passes through: the upload request, the catalog/search calls and
    broker-dispatched background tasks. Off unless ``UPLOAD_OTEL_ENABLED``.
    """
    if not parse_bool(os.environ.get("UPLOAD_OTEL_ENABLED", "false")):
        return
    if app.extensions.get("upload_tracing"):
        return

    resource = Resource.create(
        {
            "service.name": os.environ.get("UPLOAD_OTEL_SERVICE_NAME") or "upload-service",
            "service.version": os.environ.get("UPLOAD_VERSION", "0.1.0-dev"),
            "deployment.environment": os.environ.get("UPLOAD_ENV", "production"),
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(_span_exporter()))
    trace.set_tracer_provider(provider)

    FlaskInstrumentor().instrument_app(app)
    RequestsInstrumentor().instrument()
    CeleryInstrumentor().instrument()
    app.extensions["upload_tracing"] = provider
