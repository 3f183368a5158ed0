"""monitoring package"""
from .logger import (
    configure_logging,
    get_logger,
    start_metrics_server,
    timed,
    CALC_REQUESTS,
    CALC_LATENCY,
    STALE_RATES,
    REJECTED_ROWS,
    OPTIONS_GAUGE,
    GUARDRAIL_FAILURES,
)

__all__ = [
    "configure_logging", "get_logger", "start_metrics_server", "timed",
    "CALC_REQUESTS", "CALC_LATENCY", "STALE_RATES",
    "REJECTED_ROWS", "OPTIONS_GAUGE", "GUARDRAIL_FAILURES",
]
