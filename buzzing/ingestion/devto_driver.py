"""Dev.to driver: top articles of the past week, ranked by reactions."""

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

DEVTO_API_BASE = "https://dev.to/api"
DEVTO_SITE = "https://dev.to"


def _tags(tag_list: Any) -> list[str]:
    # The list endpoint returns an array, single-article payloads a comma string
    if isinstance(tag_list, str):
        return [t.strip() for t in tag_list.split(",")]
    return list(tag_list or [])


class DevtoDriver(SourceDriver):
    """Developer community articles; score is public_reactions_count."""

    score_policy = ScorePolicy(threshold=5, mode=ScoreUpdateMode.ABSOLUTE)

    def __init__(self, limit: int = 30, min_reactions: int = 20):
        self._limit = limit
        self._min_reactions = min_reactions

    @property
    def definition(self) -> Source:
        return Source(
            name="devto",
            display_name="Dev.to",
            description="Developer community sharing programming articles and tutorials",
            api_endpoint=DEVTO_API_BASE,
            min_score=self._min_reactions,
        )

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        # top=7: most-reacted articles published in the last 7 days
        articles = await client.get_json(
            f"{DEVTO_API_BASE}/articles",
            params={"per_page": self._limit, "top": 7},
        )
        if not isinstance(articles, list):
            raise SourceFetchError(self.name, "articles endpoint did not return a list")
        return articles

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        url = raw.get("url")
        source_url = raw.get("canonical_url") or url
        if not source_url:
            return None

        user = raw.get("user") or {}
        username = user.get("username")

        return CandidatePost(
            external_id=str(raw["id"]),
            title_original=raw["title"],
            summary_original=raw.get("description"),
            source_url=source_url,
            origin_url=url,
            source_domain=extract_domain(source_url, fallback="dev.to"),
            thumbnail_url=raw.get("cover_image"),
            author=user.get("name") or username,
            author_url=f"{DEVTO_SITE}/{username}" if username else None,
            score=raw.get("public_reactions_count") or 0,
            tags=_tags(raw.get("tag_list")),
            published_at=parse_iso_datetime(raw.get("published_at")) or utc_now_minute(),
        )
