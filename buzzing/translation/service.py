"""
Translation engine: cache-first, provider-second, never fatal.

For every supported locale other than the text's own:
1. Cache hit -> cached text, no provider call, no delay.
2. Cache miss -> one provider call, best-effort cache write, then a fixed
   pause so consecutive uncached calls respect the provider's rate limit.
3. Provider failure -> original text, nothing cached (a later run retries).
"""

import asyncio
import time

import structlog

from buzzing.observability.metrics import MetricsCollector, get_metrics
from buzzing.observability.tracing import get_tracer, traced
from buzzing.translation.cache import TranslationCacheRepository
from buzzing.translation.config import TranslationConfig
from buzzing.translation.provider import TranslationProvider, TranslationProviderError
from buzzing.translation.schemas import (
    ALL_LOCALES,
    Locale,
    PostTranslation,
    PostTranslationResult,
    TranslationOutcome,
)

logger = structlog.get_logger(__name__)
tracer = get_tracer("buzzing.translation")


class TranslationService:
    """Multi-locale translation with a content-hash cache and graceful fallback."""

    def __init__(
        self,
        provider: TranslationProvider,
        cache: TranslationCacheRepository,
        config: TranslationConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._config = config or TranslationConfig()
        self._metrics = metrics or get_metrics()

    async def translate_text(
        self,
        text: str,
        target: Locale,
        source: Locale = Locale.EN,
    ) -> TranslationOutcome:
        """Translate one text into one locale. Never raises for provider failures."""
        if not text or len(text.strip()) < self._config.min_text_length:
            return TranslationOutcome(text=text)

        if source == target:
            return TranslationOutcome(text=text)

        cached = await self._lookup(text, target)
        if cached is not None:
            self._metrics.record_translation_cache(target.value, hit=True)
            return TranslationOutcome(text=cached, from_cache=True)

        self._metrics.record_translation_cache(target.value, hit=False)
        try:
            translated = await self._call_provider(text, source, target)
        except TranslationProviderError as e:
            logger.warning(
                "Translation failed, using original text",
                source=source.value,
                target=target.value,
                error=str(e),
                code=e.code,
            )
            self._metrics.record_translation_error(target.value, e.code or "provider_error")
            await self._pause()
            return TranslationOutcome(text=text, degraded=True)

        await self._store(text, translated, source, target)
        await self._pause()
        return TranslationOutcome(text=translated)

    async def translate_to_all_locales(
        self,
        text: str,
        source_locale: Locale = Locale.EN,
    ) -> dict[Locale, str]:
        """Map every supported locale to a translation; the source maps to itself."""
        outcomes = await self._translate_all(text, source_locale)
        return {locale: outcome.text for locale, outcome in outcomes.items()}

    async def translate_post_to_all_locales(
        self,
        title: str,
        summary: str | None = None,
        original_lang: Locale = Locale.EN,
    ) -> dict[Locale, PostTranslation]:
        result = await self.translate_post(title, summary, original_lang)
        return result.translations

    async def translate_post(
        self,
        title: str,
        summary: str | None = None,
        original_lang: Locale = Locale.EN,
    ) -> PostTranslationResult:
        """
        Translate a post's title and optional summary, zipped per locale.

        ``degraded`` is True if any locale of either field fell back to
        the original text.
        """
        titles = await self._translate_all(title, original_lang)
        summaries = await self._translate_all(summary, original_lang) if summary else {}

        translations = {
            locale: PostTranslation(
                title=titles[locale].text,
                summary=summaries[locale].text if summaries else None,
            )
            for locale in ALL_LOCALES
        }
        degraded = any(o.degraded for o in titles.values()) or any(
            o.degraded for o in summaries.values()
        )
        return PostTranslationResult(translations=translations, degraded=degraded)

    async def translate_batch(
        self,
        texts: list[str],
        target: Locale,
        source: Locale = Locale.EN,
    ) -> list[TranslationOutcome]:
        """Translate several texts into a single locale, in order."""
        return [await self.translate_text(text, target, source) for text in texts]

    async def _translate_all(
        self, text: str, source_locale: Locale
    ) -> dict[Locale, TranslationOutcome]:
        outcomes: dict[Locale, TranslationOutcome] = {
            source_locale: TranslationOutcome(text=text)
        }
        for locale in ALL_LOCALES:
            if locale == source_locale:
                continue
            outcomes[locale] = await self.translate_text(text, locale, source_locale)
        return outcomes

    async def _lookup(self, text: str, target: Locale) -> str | None:
        try:
            return await self._cache.get(text, target)
        except Exception as e:
            # Cache outage degrades to a miss; ingestion keeps going
            logger.warning("Translation cache lookup failed", target=target.value, error=str(e))
            return None

    async def _store(
        self, text: str, translated: str, source: Locale, target: Locale
    ) -> None:
        try:
            await self._cache.put(text, translated, source, target)
        except Exception as e:
            logger.warning("Failed to save translation cache", target=target.value, error=str(e))

    async def _call_provider(self, text: str, source: Locale, target: Locale) -> str:
        start = time.monotonic()
        with traced(
            tracer,
            "translation.provider_call",
            {"provider": self._provider.name, "source": source.value, "target": target.value},
        ):
            try:
                return await self._provider.translate(text, source, target)
            finally:
                self._metrics.record_translation_latency(time.monotonic() - start)

    async def _pause(self) -> None:
        if self._config.inter_call_delay_seconds > 0:
            await asyncio.sleep(self._config.inter_call_delay_seconds)
