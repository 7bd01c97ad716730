"""
Prometheus metrics for monitoring the ingestion pipeline.

Defines and exposes metrics for:
- Source fetch runs and their latency
- Post reconciliation outcomes (inserted, re-scored, evicted)
- Items skipped during normalization
- Translation cache efficiency and provider errors
- Deferred translation sweep results

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from buzzing.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for fetch latency histograms (in seconds)
FETCH_LATENCY_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)

# Buckets for provider call latency (in seconds)
TRANSLATION_LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the buzzing pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_fetch_run("hn", "success", latency=4.2)
        metrics.record_posts("hn", inserted=12, updated=3, evicted=5)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Fetch runs
        self.fetch_runs = Counter(
            "buzzing_fetch_runs_total",
            "Total source fetch runs",
            ["source", "status"],  # status: success, failed
        )

        self.fetch_latency = Histogram(
            "buzzing_fetch_latency_seconds",
            "Wall-clock duration of a source fetch run",
            ["source"],
            buckets=FETCH_LATENCY_BUCKETS,
        )

        self.last_success = Gauge(
            "buzzing_fetch_last_success_timestamp",
            "Unix timestamp of the last successful fetch run",
            ["source"],
        )

        # Post reconciliation
        self.posts_inserted = Counter(
            "buzzing_posts_inserted_total",
            "New posts inserted",
            ["source"],
        )

        self.posts_updated = Counter(
            "buzzing_posts_score_updated_total",
            "Existing posts whose score passed the update threshold",
            ["source"],
        )

        self.posts_evicted = Counter(
            "buzzing_posts_evicted_total",
            "Posts deleted by the retention cap",
            ["source"],
        )

        self.items_skipped = Counter(
            "buzzing_items_skipped_total",
            "Raw items dropped because they could not be normalized",
            ["source"],
        )

        # Translation
        self.translation_cache_hits = Counter(
            "buzzing_translation_cache_hits_total",
            "Translation cache hits",
            ["target_lang"],
        )

        self.translation_cache_misses = Counter(
            "buzzing_translation_cache_misses_total",
            "Translation cache misses (provider called)",
            ["target_lang"],
        )

        self.translation_errors = Counter(
            "buzzing_translation_errors_total",
            "Translation provider failures that fell back to original text",
            ["target_lang", "error_type"],
        )

        self.translation_latency = Histogram(
            "buzzing_translation_latency_seconds",
            "Translation provider call latency",
            buckets=TRANSLATION_LATENCY_BUCKETS,
        )

        # Deferred sweep
        self.sweep_posts = Counter(
            "buzzing_translation_sweep_posts_total",
            "Posts handled by the pending-translation sweep",
            ["status"],  # status: translated, degraded, failed
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

    # Convenience methods

    def record_fetch_run(
        self,
        source: str,
        status: str,
        latency: float | None = None,
    ) -> None:
        """
        Record the outcome of one fetch run.

        Args:
            source: Source name
            status: success or failed
            latency: Run duration in seconds
        """
        self.fetch_runs.labels(source=source, status=status).inc()

        if latency is not None:
            self.fetch_latency.labels(source=source).observe(latency)

        if status == "success":
            self.last_success.labels(source=source).set_to_current_time()

    def record_posts(
        self,
        source: str,
        inserted: int = 0,
        updated: int = 0,
        evicted: int = 0,
    ) -> None:
        """Record reconciliation counts for a run."""
        if inserted:
            self.posts_inserted.labels(source=source).inc(inserted)
        if updated:
            self.posts_updated.labels(source=source).inc(updated)
        if evicted:
            self.posts_evicted.labels(source=source).inc(evicted)

    def record_skipped(self, source: str, count: int = 1) -> None:
        if count:
            self.items_skipped.labels(source=source).inc(count)

    def record_translation_cache(self, target_lang: str, hit: bool) -> None:
        """
        Record translation cache hit or miss.

        Args:
            target_lang: Target locale code
            hit: True for cache hit, False for miss
        """
        if hit:
            self.translation_cache_hits.labels(target_lang=target_lang).inc()
        else:
            self.translation_cache_misses.labels(target_lang=target_lang).inc()

    def record_translation_error(self, target_lang: str, error_type: str) -> None:
        self.translation_errors.labels(
            target_lang=target_lang,
            error_type=error_type,
        ).inc()

    def record_translation_latency(self, latency: float) -> None:
        self.translation_latency.observe(latency)

    def record_sweep(self, translated: int, degraded: int, failed: int) -> None:
        """Record the outcome counts of one pending-translation sweep."""
        if translated:
            self.sweep_posts.labels(status="translated").inc(translated)
        if degraded:
            self.sweep_posts.labels(status="degraded").inc(degraded)
        if failed:
            self.sweep_posts.labels(status="failed").inc(failed)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
