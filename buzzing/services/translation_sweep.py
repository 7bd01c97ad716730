"""
Deferred translation sweep.

Catches up on posts stored without a complete translation (ingest-time
translation disabled, or some locale fell back to the original text).
Every attempted post leaves the pending set, degraded or not, so a text the
provider always rejects cannot hold its slot in later sweeps. Locales that
fell back keep the original text.
"""

import asyncio
import time
from dataclasses import dataclass

import structlog

from buzzing.observability.metrics import MetricsCollector, get_metrics
from buzzing.posts.repository import PostRepository
from buzzing.translation.config import TranslationConfig
from buzzing.translation.service import TranslationService

logger = structlog.get_logger(__name__)


@dataclass
class SweepResult:
    pending: int = 0
    translated: int = 0
    degraded: int = 0  # marked translated with some locale holding the original text
    failed: int = 0  # not stored; stays pending
    duration_ms: int = 0


class TranslationSweep:
    """Translates pending posts one at a time, most recent first."""

    def __init__(
        self,
        posts: PostRepository,
        translator: TranslationService,
        config: TranslationConfig | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._posts = posts
        self._translator = translator
        self._config = config or TranslationConfig()
        self._metrics = metrics or get_metrics()

    async def translate_pending_posts(self, limit: int = 50) -> SweepResult:
        start = time.monotonic()
        pending = await self._posts.list_pending_translation(limit)
        result = SweepResult(pending=len(pending))

        logger.info("Translation sweep started", pending=len(pending), limit=limit)

        for i, post in enumerate(pending):
            if i > 0 and self._config.sweep_delay_seconds > 0:
                await asyncio.sleep(self._config.sweep_delay_seconds)

            try:
                translated = await self._translator.translate_post(
                    post.title_original,
                    post.summary_original,
                    post.original_lang,
                )
                await self._posts.save_translations(
                    post.id,
                    translated.to_storage(),
                    is_translated=True,
                )
            except Exception as e:
                logger.error("Failed to translate post", post_id=post.id, error=str(e))
                result.failed += 1
                continue

            if translated.degraded:
                logger.warning("Post stored with untranslated locales", post_id=post.id)
                result.degraded += 1
            else:
                result.translated += 1

        result.duration_ms = int((time.monotonic() - start) * 1000)
        self._metrics.record_sweep(result.translated, result.degraded, result.failed)

        logger.info(
            "Translation sweep completed",
            translated=result.translated,
            degraded=result.degraded,
            failed=result.failed,
            duration_ms=result.duration_ms,
        )
        return result
