"""Observability layer - logging and metrics."""

from contesthub.observability.logging import setup_logging
from contesthub.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
