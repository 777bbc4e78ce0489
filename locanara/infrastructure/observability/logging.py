import structlog
import logging
import sys
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import os

# Context keys copied onto every event when bound
TRACE_KEYS = ("session_id", "run_id")


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "locanara"
) -> None:
    """Route locanara events through structlog onto stdout.

    The library never calls this itself; host applications opt in.
    ``log_format`` is ``"json"`` for machine-readable lines, anything else
    selects the console renderer.
    """

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            _renderer(log_format),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
    )


def setup_logging_from_settings() -> None:
    """setup_logging driven by the LOCANARA_* environment"""

    from locanara.infrastructure.config.settings import get_settings

    settings = get_settings()
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        service_name=settings.service_name,
    )


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp the event and attach the active session and agent run ids.

    Values already present on the event win over bound context.
    """

    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())

    # Bound by Session.send and Agent.run
    bound = structlog.contextvars.get_contextvars()
    for key in TRACE_KEYS:
        if bound.get(key):
            event_dict.setdefault(key, bound[key])

    return event_dict


class LocanaraLogger:
    """Named structlog logger with one method per orchestration event kind"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_chain_event(
        self,
        event_type: str,
        chain_name: str,
        data: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.logger.info(
            "chain_event",
            event_type=event_type,
            chain_name=chain_name,
            data=data or {},
            **kwargs
        )

    def log_tool_execution(
        self,
        tool_id: str,
        input_text: str,
        output_text: Optional[str] = None,
        duration_ms: Optional[float] = None,
        success: bool = True,
        error: Optional[str] = None
    ):
        """Only lengths are logged; tool input may carry user content."""

        self.logger.info(
            "tool_execution",
            tool_id=tool_id,
            input_length=len(input_text),
            output_length=None if output_text is None else len(output_text),
            duration_ms=duration_ms,
            success=success,
            error=error
        )

    def log_agent_transition(
        self,
        from_phase: str,
        to_phase: str,
        step: int,
        action: Optional[str] = None
    ):
        # Accepts AgentPhase members or their string values
        self.logger.debug(
            "agent_transition",
            from_phase=getattr(from_phase, "value", from_phase),
            to_phase=getattr(to_phase, "value", to_phase),
            step=step,
            action=action
        )

    def log_memory_update(
        self,
        memory_type: str,
        action: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Memory appends, evictions and compressions, at debug level"""

        self.logger.debug(
            "memory_update",
            memory_type=memory_type,
            action=action,
            details=details or {}
        )


locanara_logger = LocanaraLogger("locanara")


class _LatencyStats:
    __slots__ = ("count", "total", "low", "high")

    def __init__(self):
        self.count = 0
        self.total = 0.0
        self.low: Optional[float] = None
        self.high: Optional[float] = None

    def add(self, duration_ms: float) -> None:
        self.count += 1
        self.total += duration_ms
        self.low = duration_ms if self.low is None else min(self.low, duration_ms)
        self.high = duration_ms if self.high is None else max(self.high, duration_ms)

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0,
            "min": self.low or 0,
            "max": self.high or 0,
        }


class MetricsCollector:
    """In-process latencies, counters and gauges, each mirrored to the debug log.

    Nothing is exported; hosts read ``get_metrics_summary()`` when they
    want numbers. Latencies are summarised under ``latency.<operation>``.
    """

    def __init__(self):
        self.latencies: Dict[str, _LatencyStats] = {}
        self.counters: Dict[str, int] = {}
        self.gauges: Dict[str, float] = {}

    def _emit(self, metric_type: str, tags: Optional[Dict[str, str]], **fields):
        locanara_logger.logger.debug("metric", metric_type=metric_type, tags=tags or {}, **fields)

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        self.latencies.setdefault(operation, _LatencyStats()).add(duration_ms)
        self._emit("latency", tags, operation=operation, duration_ms=duration_ms)

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        self.counters[name] = self.counters.get(name, 0) + value
        self._emit("counter", tags, name=name, value=value)

    def set_gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        self.gauges[name] = value
        self._emit("gauge", tags, name=name, value=value)

    def get_metrics_summary(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            f"latency.{operation}": stats.summary()
            for operation, stats in self.latencies.items()
        }
        summary.update(self.counters)
        summary.update(self.gauges)
        return summary

    def reset(self):
        self.latencies.clear()
        self.counters.clear()
        self.gauges.clear()


# Process-wide collector shared by chains, tools and the agent
metrics = MetricsCollector()
