"""
Generic fetch run shared by every source driver.

One run of one driver:
1. Register the source row (insert-if-absent) and honor its active flag
2. Fetch raw items through the driver
3. Normalize each item; malformed items are skipped, never fatal
4. Reconcile candidates: re-score existing posts, translate and insert new ones
5. Evict posts beyond the source's retention cap
6. Append a FetchLog row

Transport and storage failures abort the run: a failed FetchLog row is
written and the original exception is re-raised to the caller.
"""

import time
from datetime import datetime, timezone

import structlog

from buzzing.config.settings import Settings, get_settings
from buzzing.fetch_logs.repository import FetchLogRepository
from buzzing.fetch_logs.schemas import FetchLog, FetchStatus
from buzzing.ingestion.base_driver import SourceDriver
from buzzing.ingestion.http_client import HTTPClient, RetryConfig
from buzzing.ingestion.schemas import FetchResult
from buzzing.observability.logging import fetch_run_context
from buzzing.observability.metrics import MetricsCollector, get_metrics
from buzzing.observability.tracing import get_tracer, traced
from buzzing.posts.repository import PostRepository
from buzzing.posts.schemas import CandidatePost, Post
from buzzing.sources.repository import SourcesRepository
from buzzing.sources.schemas import Source
from buzzing.translation.service import TranslationService

logger = structlog.get_logger(__name__)
tracer = get_tracer("buzzing.ingestion")


class IngestionPipeline:
    """
    Runs source drivers against storage.

    Usage:
        pipeline = IngestionPipeline(sources, posts, fetch_logs, translator)
        result = await pipeline.run(LobstersDriver())
    """

    def __init__(
        self,
        sources: SourcesRepository,
        posts: PostRepository,
        fetch_logs: FetchLogRepository,
        translator: TranslationService | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Args:
            sources: Source registry
            posts: Post storage
            fetch_logs: Fetch audit log
            translator: Translation engine; None disables ingest-time translation
            settings: Application settings (HTTP timeouts and retries)
            metrics: Metrics collector
        """
        self._sources = sources
        self._posts = posts
        self._fetch_logs = fetch_logs
        self._translator = translator
        self._settings = settings or get_settings()
        self._metrics = metrics or get_metrics()

    def _http_client(self) -> HTTPClient:
        return HTTPClient(
            retry_config=RetryConfig(
                max_retries=self._settings.max_http_retries,
                max_backoff_seconds=self._settings.max_backoff_seconds,
            ),
            timeout=self._settings.http_timeout_seconds,
        )

    async def run(self, driver: SourceDriver, translate: bool = True) -> FetchResult:
        """
        Execute one fetch run for ``driver``.

        Args:
            driver: Source driver
            translate: Translate new posts before insert. Untranslated posts
                are picked up later by the pending-translation sweep.

        Raises:
            Any transport or storage error from the run, after it has been
            recorded in the fetch log.
        """
        with fetch_run_context(driver.name):
            return await self._run_logged(driver, translate)

    async def _run_logged(self, driver: SourceDriver, translate: bool) -> FetchResult:
        start = time.monotonic()

        with traced(tracer, "ingestion.fetch", {"source": driver.name}):
            try:
                source = await self._sources.get_or_create(driver.definition)
                if not source.is_active:
                    logger.info("Source inactive, skipping fetch")
                    return FetchResult(source=driver.name, skipped_inactive=True)

                result = await self._run_active(driver, source, translate)

            except Exception as e:
                duration_ms = _elapsed_ms(start)
                logger.error("Fetch run failed", error=str(e), duration_ms=duration_ms)
                self._metrics.record_fetch_run(
                    driver.name, "failed", latency=duration_ms / 1000
                )
                await self._append_failure(driver.name, e, duration_ms)
                raise

        result.duration_ms = _elapsed_ms(start)
        await self._fetch_logs.append(
            FetchLog(
                source_name=driver.name,
                status=FetchStatus.SUCCESS,
                items_count=result.new_posts,
                duration_ms=result.duration_ms,
            )
        )
        self._metrics.record_fetch_run(
            driver.name, "success", latency=result.duration_ms / 1000
        )
        self._metrics.record_posts(
            driver.name,
            inserted=result.new_posts,
            updated=result.updated,
            evicted=result.deleted,
        )

        logger.info(
            "Fetch run completed",
            count=result.count,
            new_posts=result.new_posts,
            updated=result.updated,
            deleted=result.deleted,
            skipped=result.skipped,
            duration_ms=result.duration_ms,
        )
        return result

    async def _run_active(
        self, driver: SourceDriver, source: Source, translate: bool
    ) -> FetchResult:
        result = FetchResult(source=driver.name)

        async with self._http_client() as client:
            raw_items = await driver.fetch_raw(client)

            candidates: list[CandidatePost] = []
            for raw in raw_items:
                candidate = self._normalize(driver, raw)
                if candidate is None:
                    result.skipped += 1
                    continue
                candidates.append(candidate)

            if result.skipped:
                self._metrics.record_skipped(driver.name, result.skipped)

            candidates = driver.select(candidates)
            result.count = len(candidates)

            for candidate in candidates:
                existing = await self._posts.find_existing(source.id, candidate.external_id)

                if existing is not None:
                    if driver.should_rescore(existing, candidate):
                        policy = driver.score_policy
                        updated = await self._posts.update_score_if_threshold(
                            existing.id, candidate.score, policy.threshold, policy.mode
                        )
                        if updated:
                            result.updated += 1
                    continue

                candidate = await driver.enrich(client, candidate)
                post = await self._build_post(candidate, source, translate)
                await self._posts.insert(post)
                result.new_posts += 1

        result.deleted = await self._posts.evict_excess(source.id, source.max_posts)
        return result

    def _normalize(self, driver: SourceDriver, raw: dict) -> CandidatePost | None:
        try:
            return driver.normalize(raw)
        except Exception as e:
            logger.warning("Skipping malformed item", error=str(e))
            return None

    async def _build_post(
        self, candidate: CandidatePost, source: Source, translate: bool
    ) -> Post:
        post = Post.from_candidate(candidate, source.id)
        if not translate or self._translator is None:
            return post

        translated = await self._translator.translate_post(
            candidate.title_original,
            candidate.summary_original,
            candidate.original_lang,
        )
        post.translations = translated.to_storage()
        post.is_translated = not translated.degraded
        if post.is_translated:
            post.translated_at = datetime.now(timezone.utc)
        return post

    async def _append_failure(
        self, source_name: str, error: Exception, duration_ms: int
    ) -> None:
        try:
            await self._fetch_logs.append(
                FetchLog(
                    source_name=source_name,
                    status=FetchStatus.FAILED,
                    duration_ms=duration_ms,
                    error_msg=str(error) or type(error).__name__,
                )
            )
        except Exception as log_error:
            # The run's own error is what the caller needs to see
            logger.error(
                "Failed to record failed fetch run", error=str(log_error)
            )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
