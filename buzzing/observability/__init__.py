"""Observability layer - logging, metrics, and tracing."""

from buzzing.observability.logging import fetch_run_context, setup_logging
from buzzing.observability.metrics import MetricsCollector, get_metrics
from buzzing.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "fetch_run_context",
    "MetricsCollector",
    "get_metrics",
    "setup_tracing",
    "get_tracer",
]
