"""Translation: locale set, content-hash cache, provider, and engine."""

from buzzing.translation.schemas import (
    ALL_LOCALES,
    Locale,
    PostTranslation,
    PostTranslationResult,
    TranslationOutcome,
)

__all__ = [
    "ALL_LOCALES",
    "Locale",
    "PostTranslation",
    "PostTranslationResult",
    "TranslationOutcome",
]
