import pytest
import structlog
import structlog.testing

from locanara.infrastructure.observability.logging import (
    LocanaraLogger,
    MetricsCollector,
    add_service_context,
    setup_logging,
    setup_logging_from_settings,
)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def test_setup_logging_selects_renderer(reset_structlog):
    setup_logging(log_level="DEBUG", log_format="json", service_name="locanara-test")

    processors = structlog.get_config()["processors"]
    assert add_service_context in processors
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)
    assert structlog.contextvars.get_contextvars()["service"] == "locanara-test"

    setup_logging(log_format="console")
    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)


def test_add_service_context_copies_bound_ids(reset_structlog):
    with structlog.contextvars.bound_contextvars(session_id="abc", run_id="r1"):
        event = add_service_context(None, "info", {"event": "x"})

    assert event["session_id"] == "abc"
    assert event["run_id"] == "r1"
    assert "timestamp" in event


def test_chain_events_are_logged():
    with structlog.testing.capture_logs() as logs:
        LocanaraLogger("test").log_chain_event("completed", "ModelChain", {"output_length": 3})

    assert logs == [{
        "event": "chain_event",
        "log_level": "info",
        "event_type": "completed",
        "chain_name": "ModelChain",
        "data": {"output_length": 3},
    }]


def test_add_service_context_keeps_explicit_values():
    structlog.contextvars.clear_contextvars()
    event = add_service_context(None, "info", {"timestamp": "t", "run_id": "explicit"})

    assert event == {"timestamp": "t", "run_id": "explicit"}


def test_metrics_summary():
    collector = MetricsCollector()
    collector.record_latency("chain", 10)
    collector.record_latency("chain", 30)
    collector.increment_counter("chain.executions")
    collector.increment_counter("chain.executions", 2)
    collector.set_gauge("memory.tokens", 120)

    summary = collector.get_metrics_summary()

    assert summary["latency.chain"] == {"count": 2, "avg": 20, "min": 10, "max": 30}
    assert summary["chain.executions"] == 3
    assert summary["memory.tokens"] == 120

    collector.reset()
    assert collector.get_metrics_summary() == {}


def test_setup_logging_from_settings(reset_structlog, monkeypatch):
    monkeypatch.setenv("LOCANARA_LOG_FORMAT", "console")
    monkeypatch.setenv("LOCANARA_SERVICE_NAME", "from-env")

    setup_logging_from_settings()

    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)
    assert structlog.contextvars.get_contextvars()["service"] == "from-env"
