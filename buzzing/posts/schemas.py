"""
Post schema and the score-update policy.

Every source driver normalizes its raw items into CandidatePost; the
pipeline attaches the owning source and translations to produce a Post.
The (source_id, external_id) pair is the dedup key and is enforced by a
unique constraint in storage.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from buzzing.translation.schemas import Locale


class CandidatePost(BaseModel):
    """A normalized item produced by a source driver, before storage."""

    external_id: str = Field(
        ...,
        min_length=1,
        description="Origin-native ID, or a stable value derived from the canonical URL",
    )
    title_original: str = Field(..., min_length=1)
    summary_original: str | None = None
    original_lang: Locale = Locale.EN

    source_url: str = Field(..., min_length=1, description="Canonical content URL")
    origin_url: str | None = Field(
        default=None,
        description="Platform page for the item (discussion thread, product page)",
    )
    source_domain: str = Field(..., description="Content hostname without leading www.")
    thumbnail_url: str | None = None
    author: str | None = None
    author_url: str | None = None

    score: int = 0
    tags: list[str] = Field(default_factory=list)
    published_at: datetime = Field(..., description="UTC, truncated to the minute")

    @field_validator("title_original")
    @classmethod
    def normalize_title(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("summary_original")
    @classmethod
    def blank_summary_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Drop blanks and duplicates, keeping first-seen order."""
        normalized: list[str] = []
        for tag in v:
            t = tag.strip()
            if t and t not in normalized:
                normalized.append(t)
        return normalized

    @field_validator("published_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class Post(CandidatePost):
    """A stored post."""

    id: str | None = None
    source_id: str
    translations: dict[str, dict[str, Any]] | None = Field(
        default=None,
        description="locale -> {title, summary}",
    )
    is_translated: bool = False
    translated_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_candidate(cls, candidate: CandidatePost, source_id: str) -> "Post":
        return cls(**candidate.model_dump(), source_id=source_id)


@dataclass(frozen=True)
class ExistingPost:
    """The part of a stored post needed to reconcile a re-seen item."""

    id: str
    score: int


class ScoreUpdateMode(str, Enum):
    """How the score delta of a re-seen item is compared to the threshold."""

    INCREASE_ONLY = "increase_only"  # new - old > threshold
    ABSOLUTE = "absolute"  # |new - old| > threshold

    def exceeds(self, old_score: int, new_score: int, threshold: int) -> bool:
        delta = new_score - old_score
        if self is ScoreUpdateMode.ABSOLUTE:
            delta = abs(delta)
        return delta > threshold


@dataclass(frozen=True)
class ScorePolicy:
    """
    Dead-band for re-scoring items already stored.

    A re-seen item only writes its new score when the delta is strictly
    greater than ``threshold``; noisy small movements are ignored.
    """

    threshold: int
    mode: ScoreUpdateMode = ScoreUpdateMode.INCREASE_ONLY

    def should_update(self, old_score: int, new_score: int) -> bool:
        return self.mode.exceeds(old_score, new_score, self.threshold)
