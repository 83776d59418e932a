import logging
import os
from importlib.metadata import PackageNotFoundError, version

from opentelemetry import trace

logger = logging.getLogger(__name__)

_TRACER_NAME = "shipping_crm"
_DISTRIBUTION = "shipping-crm"


def otel_enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "false").lower() in {"1", "true", "yes", "on"}


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return an OTel tracer.

    Without a configured TracerProvider the API hands out no-op spans, so
    conversions and ingestion runs open spans unconditionally.
    """
    return trace.get_tracer(name or _TRACER_NAME)


def _package_version() -> str:
    try:
        return version(_DISTRIBUTION)
    except PackageNotFoundError:
        return "0.0.0"


def resource_attributes() -> dict[str, str]:
    """Attributes stamped on every exported span."""
    return {
        "service.name": os.getenv("OTEL_SERVICE_NAME", _TRACER_NAME),
        "service.namespace": "shipping_pipeline",
        "service.version": _package_version(),
        "deployment.environment": os.getenv("DEPLOYMENT_ENVIRONMENT", "development"),
    }


def _instrument_fastapi(app) -> None:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

    # Health checks and metric scrapes are not pipeline traffic.
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def _instrument_sqlalchemy(_app) -> None:
    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    from app.db import get_engine

    SQLAlchemyInstrumentor().instrument(engine=get_engine())


def _instrument_httpx(_app) -> None:
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    HTTPXClientInstrumentor().instrument()


def _instrument_logging(_app) -> None:
    from opentelemetry.instrumentation.logging import LoggingInstrumentor

    LoggingInstrumentor().instrument(set_logging_format=True)


# API requests, ledger queries, lead feed fetches, trace ids in log lines.
INSTRUMENTORS = (
    ("FastAPI", _instrument_fastapi),
    ("SQLAlchemy", _instrument_sqlalchemy),
    ("httpx", _instrument_httpx),
    ("logging", _instrument_logging),
)


def instrument(app) -> list[str]:
    """Run each instrumentor; return the labels that succeeded."""
    installed = []
    for label, setup in INSTRUMENTORS:
        try:
            setup(app)
        except Exception:
            logger.warning("OTel: %s instrumentation unavailable", label, exc_info=True)
            continue
        installed.append(label)
    return installed


def setup_otel(app) -> None:
    """Export pipeline spans over OTLP when ``OTEL_ENABLED`` is set."""
    if not otel_enabled():
        return

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    attributes = resource_attributes()
    provider = TracerProvider(resource=Resource.create(attributes))
    trace.set_tracer_provider(provider)

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    exporter = OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces") if endpoint else OTLPSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))

    installed = instrument(app)
    logger.info(
        "OpenTelemetry tracing enabled service=%s instrumented=%s",
        attributes["service.name"],
        ",".join(installed) or "none",
    )
