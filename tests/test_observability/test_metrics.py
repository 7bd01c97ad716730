"""Tests for the Prometheus metrics collector."""

from prometheus_client import REGISTRY

from buzzing.observability.metrics import get_metrics


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsCollector:
    def test_singleton(self):
        assert get_metrics() is get_metrics()

    def test_record_fetch_run(self):
        metrics = get_metrics()
        before = _sample("buzzing_fetch_runs_total", {"source": "metrics-test", "status": "success"})

        metrics.record_fetch_run("metrics-test", "success", latency=1.5)

        after = _sample("buzzing_fetch_runs_total", {"source": "metrics-test", "status": "success"})
        assert after == before + 1
        assert _sample("buzzing_fetch_last_success_timestamp", {"source": "metrics-test"}) > 0

    def test_record_posts_skips_zero_counts(self):
        metrics = get_metrics()

        metrics.record_posts("metrics-posts", inserted=3, updated=0, evicted=2)

        assert _sample("buzzing_posts_inserted_total", {"source": "metrics-posts"}) == 3
        assert _sample("buzzing_posts_evicted_total", {"source": "metrics-posts"}) == 2
        assert (
            REGISTRY.get_sample_value(
                "buzzing_posts_score_updated_total", {"source": "metrics-posts"}
            )
            is None
        )

    def test_translation_cache_hit_and_miss(self):
        metrics = get_metrics()
        hits = _sample("buzzing_translation_cache_hits_total", {"target_lang": "ja"})
        misses = _sample("buzzing_translation_cache_misses_total", {"target_lang": "ja"})

        metrics.record_translation_cache("ja", hit=True)
        metrics.record_translation_cache("ja", hit=False)
        metrics.record_translation_cache("ja", hit=False)

        assert _sample("buzzing_translation_cache_hits_total", {"target_lang": "ja"}) == hits + 1
        assert (
            _sample("buzzing_translation_cache_misses_total", {"target_lang": "ja"}) == misses + 2
        )
