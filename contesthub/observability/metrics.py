"""
Prometheus metrics for monitoring the aggregation pipeline.

Defines and exposes metrics for:
- Per-source fetch outcomes and latency
- Normalization failures
- Contest cache hits and misses
- Webhook deliveries

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging
from enum import Enum

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from contesthub.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 30.0)


def _label(value: Enum | str) -> str:
    return value.value if isinstance(value, Enum) else value


class MetricsCollector:
    """
    Prometheus metrics collector for contesthub.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_source_fetch("codeforces", "ok", count=12, latency=0.4)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.source_fetches = Counter(
            "contesthub_source_fetches_total",
            "Adapter runs by outcome",
            ["source", "outcome"],  # outcome: ok, empty, error
        )

        self.source_records = Counter(
            "contesthub_source_records_total",
            "Raw records returned by adapters",
            ["source"],
        )

        self.source_latency = Histogram(
            "contesthub_source_latency_seconds",
            "Time for one adapter run",
            ["source"],
            buckets=LATENCY_BUCKETS,
        )

        self.normalization_errors = Counter(
            "contesthub_normalization_errors_total",
            "Raw records dropped by the normalizer",
            ["source"],
        )

        self.aggregation_latency = Histogram(
            "contesthub_aggregation_latency_seconds",
            "Time for one aggregation cycle",
            ["stage"],  # primary, fallback
            buckets=LATENCY_BUCKETS,
        )

        self.contests_aggregated = Gauge(
            "contesthub_contests_aggregated",
            "Contests produced by the last aggregation cycle",
        )

        self.cache_requests = Counter(
            "contesthub_cache_requests_total",
            "Contest cache lookups",
            ["result"],  # hit, miss
        )

        self.webhook_deliveries = Counter(
            "contesthub_webhook_deliveries_total",
            "Webhook delivery attempts",
            ["outcome"],  # success, failure
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    def record_source_fetch(
        self,
        source: Enum | str,
        outcome: str,
        count: int = 0,
        latency: float | None = None,
    ) -> None:
        """
        Record one adapter run.

        Args:
            source: Source identifier
            outcome: ok, empty or error
            count: Number of raw records returned
            latency: Optional run latency in seconds
        """
        label = _label(source)
        self.source_fetches.labels(source=label, outcome=outcome).inc()
        if count:
            self.source_records.labels(source=label).inc(count)
        if latency is not None:
            self.source_latency.labels(source=label).observe(latency)

    def record_normalization_error(self, source: Enum | str) -> None:
        self.normalization_errors.labels(source=_label(source)).inc()

    def record_aggregation(self, stage: str, count: int, latency: float) -> None:
        self.aggregation_latency.labels(stage=stage).observe(latency)
        self.contests_aggregated.set(count)

    def record_cache(self, hit: bool) -> None:
        self.cache_requests.labels(result="hit" if hit else "miss").inc()

    def record_webhook_delivery(self, success: bool) -> None:
        self.webhook_deliveries.labels(
            outcome="success" if success else "failure"
        ).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
