"""Lobsters driver (https://lobste.rs/hottest.json)."""

import logging
from typing import Any

from buzzing.ingestion.base_driver import (
    SourceDriver,
    SourceFetchError,
    extract_domain,
    parse_iso_datetime,
    utc_now_minute,
)
from buzzing.ingestion.http_client import HTTPClient
from buzzing.posts.schemas import CandidatePost, ScorePolicy, ScoreUpdateMode
from buzzing.sources.schemas import Source

logger = logging.getLogger(__name__)

LOBSTERS_BASE = "https://lobste.rs"

LISTINGS = ("hottest", "newest")


def _submitter(story: dict[str, Any]) -> str | None:
    # Older API versions return a user object instead of the username
    user = story.get("submitter_user")
    if isinstance(user, dict):
        return user.get("username")
    return user or None


class LobstersDriver(SourceDriver):
    """Technology-focused link aggregator run by programmers."""

    score_policy = ScorePolicy(threshold=10, mode=ScoreUpdateMode.INCREASE_ONLY)

    def __init__(self, listing: str = "hottest", limit: int = 50, min_score: int = 5):
        if listing not in LISTINGS:
            raise ValueError(f"Unknown Lobsters listing {listing!r}, expected one of {LISTINGS}")
        self._listing = listing
        self._limit = limit
        self._min_score = min_score

    @property
    def definition(self) -> Source:
        return Source(
            name="lobsters",
            display_name="Lobsters",
            description="Technology-focused link aggregation community run by programmers",
            api_endpoint=LOBSTERS_BASE,
            min_score=self._min_score,
        )

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        stories = await client.get_json(f"{LOBSTERS_BASE}/{self._listing}.json")
        if not isinstance(stories, list):
            raise SourceFetchError(self.name, f"{self._listing}.json did not return a list")
        return stories

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        comments_url = raw.get("comments_url") or raw.get("short_id_url")
        source_url = raw.get("url") or comments_url
        if not source_url:
            return None

        author = _submitter(raw)
        return CandidatePost(
            external_id=raw["short_id"],
            title_original=raw["title"],
            summary_original=raw.get("description_plain"),
            source_url=source_url,
            origin_url=comments_url,
            source_domain=extract_domain(source_url, fallback="lobste.rs"),
            author=author,
            author_url=f"{LOBSTERS_BASE}/~{author}" if author else None,
            score=raw.get("score") or 0,
            tags=raw.get("tags") or [],
            published_at=parse_iso_datetime(raw.get("created_at")) or utc_now_minute(),
        )

    def select(self, candidates: list[CandidatePost]) -> list[CandidatePost]:
        """Score filter first, then the limit, in listing order."""
        return super().select(candidates)[: self._limit]
