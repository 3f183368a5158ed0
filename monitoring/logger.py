"""
monitoring/logger.py
Structured logging, Prometheus metrics and the stage timing decorator.

structlog is configured once on import; every module obtains its logger via
get_logger(__name__).  Metrics are created on first use so that importing
the calculation engine in tests never touches the default registry twice.
"""
import functools
import logging
import time
from typing import Any, Callable, Optional


def get_logger(name: str):
    """Return a structlog logger bound to `name`."""
    import structlog
    return structlog.get_logger(name)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog over stdlib logging. No-op once configured."""
    import structlog
    if structlog.is_configured():
        return
    from config.settings import settings
    level_name = (level or settings.log_level).upper()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format="%(message)s")


configure_logging()


# ── Prometheus metrics (created lazily on first access) ───────────────────────

class _LazyMetric:
    """Defers creation of a prometheus_client metric until it is first used."""

    def __init__(self, kind: str, name: str, doc: str, labels=(), **kwargs):
        self._kind = kind
        self._args = (name, doc, list(labels))
        self._kwargs = kwargs
        self._metric = None

    def _get(self):
        if self._metric is None:
            import prometheus_client
            self._metric = getattr(prometheus_client, self._kind)(*self._args, **self._kwargs)
        return self._metric

    def labels(self, **kw):
        return self._get().labels(**kw)

    def inc(self, amount: float = 1.0):
        self._get().inc(amount)

    def set(self, value: float):
        self._get().set(value)


CALC_REQUESTS = _LazyMetric(
    "Counter", "freight_calculation_requests_total",
    "Calculation requests by outcome (ok, no_route, invalid)", ["status"],
)
CALC_LATENCY = _LazyMetric(
    "Histogram", "freight_calculation_duration_seconds",
    "Latency per calculation stage", ["stage"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
)
STALE_RATES = _LazyMetric(
    "Counter", "freight_stale_rate_warnings_total",
    "Stale or missing rate warnings by cost category", ["category"],
)
REJECTED_ROWS = _LazyMetric(
    "Counter", "freight_snapshot_rejected_rows_total",
    "Snapshot rows rejected by the loader", ["table"],
)
OPTIONS_GAUGE = _LazyMetric(
    "Gauge", "freight_last_route_option_count",
    "Priced route options in the last calculation",
)
GUARDRAIL_FAILURES = _LazyMetric(
    "Counter", "freight_guardrail_failures_total",
    "Guardrail failures", ["check_type"],
)


def start_metrics_server(port: int = 9090) -> None:
    from prometheus_client import start_http_server
    log = get_logger("monitoring")
    try:
        start_http_server(port)
    except OSError as exc:
        log.warning("Could not start metrics server", port=port, error=str(exc))
        return
    log.info("Prometheus metrics server started", port=port)


def timed(stage: str) -> Callable:
    """Observe the wrapped call's duration in CALC_LATENCY under `stage`."""
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                CALC_LATENCY.labels(stage=stage).observe(time.perf_counter() - t0)
        return wrapper
    return decorator
