"""
Hacker News drivers (Firebase API).

The story list endpoints return bare ids; item details are fetched
concurrently in fixed-size batches to bound outbound connections. A failed
detail fetch only drops that item, a failed id list fails the run.

Three sources share this code:
- hn: top/best/new stories, absolute score dead-band of 10
- askhn: Ask HN stories with their text as summary, increase-only dead-band of 30
- showhn: Show HN stories, absolute score dead-band of 10
"""

import asyncio
import logging
from typing import Any

from buzzing.ingestion.base_driver import (
    SourceDriver,
    SourceFetchError,
    extract_domain,
    html_to_text,
    parse_unix_timestamp,
    utc_now_minute,
)
from buzzing.ingestion.config import IngestionConfig
from buzzing.ingestion.http_client import HTTPClient, HTTPClientError
from buzzing.posts.schemas import (
    CandidatePost,
    ExistingPost,
    ScorePolicy,
    ScoreUpdateMode,
)
from buzzing.sources.schemas import Source

logger = logging.getLogger(__name__)

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_SITE = "https://news.ycombinator.com"

STORY_LISTS = {
    "top": "topstories",
    "best": "beststories",
    "new": "newstories",
}

TITLE_PREFIX_TAGS = [
    ("Show HN:", "Show HN"),
    ("Ask HN:", "Ask HN"),
    ("Tell HN:", "Tell HN"),
    ("Launch HN:", "Launch HN"),
]


def item_url(item_id: Any) -> str:
    return f"{HN_SITE}/item?id={item_id}"


def user_url(username: str) -> str:
    return f"{HN_SITE}/user?id={username}"


def detect_tags(title: str) -> list[str]:
    """Tags sniffed from HN title conventions."""
    tags = []
    for prefix, tag in TITLE_PREFIX_TAGS:
        if title.startswith(prefix):
            tags.append(tag)
            break

    if "[video]" in title:
        tags.append("Video")
    if "[pdf]" in title:
        tags.append("PDF")
    return tags


def is_live_story(item: dict[str, Any]) -> bool:
    return (
        item.get("type") == "story"
        and not item.get("deleted")
        and not item.get("dead")
        and bool(item.get("title"))
    )


class HackerNewsDriver(SourceDriver):
    """Hacker News front page (top, best or new stories)."""

    score_policy = ScorePolicy(threshold=10, mode=ScoreUpdateMode.ABSOLUTE)

    def __init__(
        self,
        story_type: str = "top",
        limit: int = 50,
        min_score: int = 100,
        config: IngestionConfig | None = None,
    ):
        if story_type not in STORY_LISTS:
            raise ValueError(
                f"Unknown story type {story_type!r}, expected one of {sorted(STORY_LISTS)}"
            )
        self._story_list = STORY_LISTS[story_type]
        self._limit = limit
        self._min_score = min_score
        self._config = config or IngestionConfig()

    @property
    def definition(self) -> Source:
        return Source(
            name="hn",
            display_name="Hacker News",
            description="Y Combinator's technology community: trending developer and startup discussions",
            api_endpoint=HN_API_BASE,
            min_score=self._min_score,
        )

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        ids = await client.get_json(f"{HN_API_BASE}/{self._story_list}.json")
        if not isinstance(ids, list):
            raise SourceFetchError(self.name, f"{self._story_list} did not return a list")

        ids = ids[: self._limit]
        batch_size = self._config.detail_batch_size
        items: list[dict[str, Any]] = []

        for i in range(0, len(ids), batch_size):
            batch = ids[i : i + batch_size]
            results = await asyncio.gather(
                *(self._fetch_item(client, item_id) for item_id in batch)
            )
            items.extend(item for item in results if item is not None)

        logger.debug(f"{self.name}: fetched {len(items)}/{len(ids)} items")
        return items

    async def _fetch_item(self, client: HTTPClient, item_id: Any) -> dict[str, Any] | None:
        try:
            item = await client.get_json(f"{HN_API_BASE}/item/{item_id}.json")
        except HTTPClientError as e:
            logger.warning(f"Failed to fetch HN item {item_id}: {e}")
            return None
        return item if isinstance(item, dict) else None

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        if not is_live_story(raw):
            return None

        item_id = raw["id"]
        title = raw["title"]
        source_url = raw.get("url") or item_url(item_id)
        author = raw.get("by")

        return CandidatePost(
            external_id=str(item_id),
            title_original=title,
            source_url=source_url,
            origin_url=item_url(item_id),
            source_domain=extract_domain(source_url, fallback="news.ycombinator.com"),
            author=author,
            author_url=user_url(author) if author else None,
            score=raw.get("score") or 0,
            tags=detect_tags(title),
            published_at=parse_unix_timestamp(raw.get("time")) or utc_now_minute(),
        )

    def should_rescore(self, existing: ExistingPost, candidate: CandidatePost) -> bool:
        # A zero score means the item payload had no score at all
        if not candidate.score:
            return False
        return super().should_rescore(existing, candidate)


class AskHNDriver(HackerNewsDriver):
    """Ask HN stories; the question text becomes the summary."""

    score_policy = ScorePolicy(threshold=30, mode=ScoreUpdateMode.INCREASE_ONLY)

    def __init__(
        self,
        limit: int = 30,
        min_score: int = 50,
        config: IngestionConfig | None = None,
    ):
        super().__init__(limit=limit, min_score=min_score, config=config)
        self._story_list = "askstories"

    @property
    def definition(self) -> Source:
        return Source(
            name="askhn",
            display_name="Ask HN",
            description="Hacker News Q&A: technical questions and career discussions",
            api_endpoint=HN_API_BASE,
            min_score=self._min_score,
        )

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        if not is_live_story(raw):
            return None

        item_id = raw["id"]
        author = raw.get("by")
        summary = html_to_text(raw.get("text"))[:500]

        return CandidatePost(
            external_id=str(item_id),
            title_original=raw["title"],
            summary_original=summary or None,
            source_url=item_url(item_id),
            origin_url=item_url(item_id),
            source_domain="news.ycombinator.com",
            author=author,
            author_url=user_url(author) if author else None,
            score=raw.get("score") or 0,
            tags=["Ask HN"],
            published_at=parse_unix_timestamp(raw.get("time")) or utc_now_minute(),
        )


class ShowHNDriver(HackerNewsDriver):
    """Show HN launches."""

    def __init__(
        self,
        limit: int = 30,
        min_score: int = 10,
        config: IngestionConfig | None = None,
    ):
        super().__init__(limit=limit, min_score=min_score, config=config)
        self._story_list = "showstories"

    @property
    def definition(self) -> Source:
        return Source(
            name="showhn",
            display_name="Show HN",
            description="Projects and products shared by the Hacker News community",
            api_endpoint=HN_API_BASE,
            min_score=self._min_score,
        )
