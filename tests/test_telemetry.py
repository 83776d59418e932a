from opentelemetry import trace

from app import telemetry


def test_setup_is_a_noop_when_disabled(monkeypatch):
    monkeypatch.delenv("OTEL_ENABLED", raising=False)
    calls = []
    monkeypatch.setattr(telemetry, "INSTRUMENTORS", (("fake", calls.append),))
    provider = trace.get_tracer_provider()

    telemetry.setup_otel(object())

    assert calls == []
    assert trace.get_tracer_provider() is provider


def test_otel_enabled_flag(monkeypatch):
    monkeypatch.setenv("OTEL_ENABLED", "yes")
    assert telemetry.otel_enabled() is True
    monkeypatch.setenv("OTEL_ENABLED", "0")
    assert telemetry.otel_enabled() is False


def test_resource_attributes(monkeypatch):
    monkeypatch.setenv("OTEL_SERVICE_NAME", "shipping-crm-staging")
    monkeypatch.setenv("DEPLOYMENT_ENVIRONMENT", "staging")

    attributes = telemetry.resource_attributes()

    assert attributes["service.name"] == "shipping-crm-staging"
    assert attributes["service.namespace"] == "shipping_pipeline"
    assert attributes["deployment.environment"] == "staging"
    assert attributes["service.version"]


def test_instrument_skips_failures(monkeypatch):
    seen = []

    def _broken(_app):
        raise RuntimeError("instrumentation package missing")

    monkeypatch.setattr(
        telemetry,
        "INSTRUMENTORS",
        (("ok", seen.append), ("broken", _broken), ("also_ok", seen.append)),
    )
    app = object()

    assert telemetry.instrument(app) == ["ok", "also_ok"]
    assert seen == [app, app]


def test_tracer_spans_without_provider():
    tracer = telemetry.get_tracer("tests")
    with tracer.start_as_current_span("conversions.lead_to_quote") as span:
        span.set_attribute("pipeline.outcome", "created")
