"""
Reddit driver using the public JSON listings (no OAuth).

Merges r/popular with the hot listings of a curated set of technology
subreddits, deduplicated by post id and ranked by score. Listings are
independent: a failing subreddit is logged and skipped, and the run only
fails when every listing failed.
"""

import asyncio
import logging
from typing import Any

from buzzing.ingestion.base_driver import (
    SourceDriver,
    SourceFetchError,
    extract_domain,
    parse_unix_timestamp,
    utc_now_minute,
)
from buzzing.ingestion.config import IngestionConfig
from buzzing.ingestion.http_client import HTTPClient, HTTPClientError
from buzzing.posts.schemas import CandidatePost, ScorePolicy, ScoreUpdateMode
from buzzing.sources.schemas import Source

logger = logging.getLogger(__name__)

REDDIT_API_BASE = "https://www.reddit.com"
REDDIT_SITE = "https://reddit.com"

POPULAR_LIMIT = 50


def parse_listing(payload: Any) -> list[dict[str, Any]]:
    """Posts from a listing response, without stickied or NSFW ones."""
    data = payload.get("data") if isinstance(payload, dict) else None
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        raise ValueError("listing has no data.children")
    posts = [child.get("data") or {} for child in children]
    return [p for p in posts if p and not p.get("stickied") and not p.get("over_18")]


class RedditDriver(SourceDriver):
    """Reddit front page plus technology subreddits."""

    score_policy = ScorePolicy(threshold=50, mode=ScoreUpdateMode.ABSOLUTE)

    def __init__(
        self,
        subreddits: list[str] | None = None,
        include_popular: bool | None = None,
        limit: int = 25,
        min_score: int = 100,
        config: IngestionConfig | None = None,
    ):
        """
        Initialize Reddit driver.

        Args:
            subreddits: Subreddits whose hot listing is merged in (default from config)
            include_popular: Also fetch r/popular (default from config)
            limit: Posts per subreddit listing
            min_score: Minimum upvote score
            config: Ingestion settings
        """
        self._config = config or IngestionConfig()
        self._subreddits = (
            subreddits if subreddits is not None else self._config.reddit_subreddits
        )
        self._include_popular = (
            include_popular
            if include_popular is not None
            else self._config.reddit_include_popular
        )
        self._limit = limit
        self._min_score = min_score

    @property
    def definition(self) -> Source:
        return Source(
            name="reddit",
            display_name="Reddit",
            description="The largest community forum: trending discussions across every field",
            api_endpoint=REDDIT_API_BASE,
            min_score=self._min_score,
        )

    def _listing_urls(self) -> list[tuple[str, str, int]]:
        urls = []
        if self._include_popular:
            urls.append(("r/popular", f"{REDDIT_API_BASE}/r/popular.json", POPULAR_LIMIT))
        for subreddit in self._subreddits:
            urls.append(
                (f"r/{subreddit}", f"{REDDIT_API_BASE}/r/{subreddit}/hot.json", self._limit)
            )
        return urls

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        listings = self._listing_urls()
        posts: list[dict[str, Any]] = []
        failures = 0

        for i, (label, url, limit) in enumerate(listings):
            if i > 0 and self._config.reddit_request_delay_seconds:
                await asyncio.sleep(self._config.reddit_request_delay_seconds)
            try:
                payload = await client.get_json(
                    url,
                    params={"limit": limit, "raw_json": 1},
                    headers={"User-Agent": self._config.user_agent},
                )
                posts.extend(parse_listing(payload))
            except (HTTPClientError, ValueError) as e:
                failures += 1
                logger.error(f"Reddit listing {label} failed: {e}")

        if listings and failures == len(listings):
            raise SourceFetchError(self.name, f"all {failures} listings failed")

        unique: dict[str, dict[str, Any]] = {}
        for post in posts:
            if post.get("id"):
                unique.setdefault(post["id"], post)

        logger.debug(f"Reddit: {len(unique)} unique posts from {len(listings)} listings")
        return list(unique.values())

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        permalink = raw.get("permalink")
        if not permalink:
            return None

        thread_url = f"{REDDIT_SITE}{permalink}"
        is_self = bool(raw.get("is_self"))
        source_url = thread_url if is_self else (raw.get("url") or thread_url)
        author = raw.get("author")
        thumbnail = raw.get("thumbnail") or ""

        tags = [f"r/{raw['subreddit']}"] if raw.get("subreddit") else []
        if raw.get("link_flair_text"):
            tags.append(raw["link_flair_text"])

        return CandidatePost(
            external_id=raw["id"],
            title_original=raw["title"],
            source_url=source_url,
            origin_url=thread_url,
            source_domain=(
                "reddit.com" if is_self else extract_domain(source_url, fallback="reddit.com")
            ),
            thumbnail_url=thumbnail if thumbnail.startswith("http") else None,
            author=author,
            author_url=f"{REDDIT_SITE}/user/{author}" if author else None,
            score=raw.get("score") or 0,
            tags=tags,
            published_at=parse_unix_timestamp(raw.get("created_utc")) or utc_now_minute(),
        )

    def select(self, candidates: list[CandidatePost]) -> list[CandidatePost]:
        return sorted(super().select(candidates), key=lambda c: c.score, reverse=True)
