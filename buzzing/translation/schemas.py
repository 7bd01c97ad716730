"""Locale set and translation value types."""

from enum import Enum

from pydantic import BaseModel, Field


class Locale(str, Enum):
    """Supported locales. Every post is rendered in all three."""

    EN = "en"
    ZH = "zh"
    JA = "ja"


ALL_LOCALES: tuple[Locale, ...] = (Locale.EN, Locale.ZH, Locale.JA)


class PostTranslation(BaseModel):
    """Title and optional summary of a post in one locale."""

    title: str = Field(..., description="Translated (or passed-through) title")
    summary: str | None = Field(default=None, description="Translated summary if the post has one")


class TranslationOutcome(BaseModel):
    """Result of translating one text into one locale."""

    text: str
    from_cache: bool = False
    degraded: bool = Field(
        default=False,
        description="True when the provider failed and the original text was substituted",
    )


class PostTranslationResult(BaseModel):
    """Per-locale translations for a post plus whether any locale fell back."""

    translations: dict[Locale, PostTranslation]
    degraded: bool = False

    def to_storage(self) -> dict[str, dict[str, str | None]]:
        """JSONB shape stored on the post: ``{"zh": {"title": ..., "summary": ...}}``."""
        return {
            locale.value: translation.model_dump()
            for locale, translation in self.translations.items()
        }
