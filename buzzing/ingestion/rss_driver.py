"""
RSS/Atom driver base for news sources.

Feeds are downloaded through the shared HTTPClient and parsed with
feedparser. Multi-feed sources fetch all feeds concurrently, merge them
and deduplicate by link; a failing feed is skipped unless every feed
failed. News items carry no score and never change after insert.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import feedparser

from buzzing.ingestion.base_driver import (
    SourceDriver,
    SourceFetchError,
    extract_domain,
    html_to_text,
    truncate_to_minute,
    url_to_external_id,
    utc_now_minute,
)
from buzzing.ingestion.http_client import HTTPClient, HTTPClientError
from buzzing.posts.schemas import CandidatePost

logger = logging.getLogger(__name__)

RSS_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8"


def parse_feed(text: str, url: str, source: str) -> list[dict[str, Any]]:
    """
    Parse feed XML into entries.

    Raises:
        SourceFetchError: If the document is malformed and yielded no entries.
    """
    feed = feedparser.parse(text)
    entries = list(feed.get("entries", []))
    if feed.get("bozo") and not entries:
        reason = feed.get("bozo_exception")
        raise SourceFetchError(source, f"malformed feed at {url}: {reason}")
    return entries


def entry_published(entry: dict[str, Any]) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return truncate_to_minute(datetime(*parsed[:6], tzinfo=timezone.utc))


def entry_summary(entry: dict[str, Any]) -> str:
    """Plain-text summary (the feed's description with markup removed)."""
    return html_to_text(entry.get("summary"))


def entry_categories(entry: dict[str, Any]) -> list[str]:
    return [t["term"] for t in entry.get("tags") or [] if t.get("term")]


def enclosure_image(entry: dict[str, Any]) -> str | None:
    for link in entry.get("enclosures") or []:
        if link.get("href") and (link.get("type") or "").startswith("image/"):
            return link["href"]
    return None


def media_image(entry: dict[str, Any]) -> str | None:
    """media:thumbnail, then media:content."""
    for key in ("media_thumbnail", "media_content"):
        for media in entry.get(key) or []:
            if media.get("url"):
                return media["url"]
    return None


class RSSFeedDriver(SourceDriver):
    """
    Base for feed-backed sources.

    Subclasses set ``feed_urls`` and ``definition`` and may override the
    per-entry hooks (external_id, thumbnail, tags, summary, author) or
    order_entries().
    """

    feed_urls: list[str] = []

    def __init__(self, limit: int = 20):
        self._limit = limit

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        results = await asyncio.gather(
            *(self._fetch_feed(client, url) for url in self.feed_urls),
            return_exceptions=True,
        )

        entries: list[dict[str, Any]] = []
        errors: list[BaseException] = []
        for url, result in zip(self.feed_urls, results):
            if isinstance(result, BaseException):
                if not isinstance(result, (HTTPClientError, SourceFetchError)):
                    raise result
                logger.warning(f"{self.name}: feed {url} failed: {result}")
                errors.append(result)
                continue
            entries.extend(result)

        if errors and len(errors) == len(self.feed_urls):
            raise errors[0]

        seen: set[str] = set()
        unique = []
        for entry in entries:
            link = entry.get("link")
            if link and link in seen:
                continue
            if link:
                seen.add(link)
            unique.append(entry)

        return self.order_entries(unique)[: self._limit]

    async def _fetch_feed(self, client: HTTPClient, url: str) -> list[dict[str, Any]]:
        text = await client.get_text(url, headers={"Accept": RSS_ACCEPT})
        return parse_feed(text, url, self.name)

    def order_entries(self, entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Order before the limit is applied. Default keeps feed order."""
        return entries

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        link = raw.get("link")
        title = raw.get("title")
        if not link or not title:
            return None

        return CandidatePost(
            external_id=self.external_id(link),
            title_original=title,
            summary_original=self.summary(raw),
            source_url=link,
            origin_url=link,
            source_domain=extract_domain(link, fallback=self.default_domain),
            thumbnail_url=self.thumbnail(raw),
            author=self.author(raw),
            score=0,
            tags=self.tags(raw),
            published_at=entry_published(raw) or utc_now_minute(),
        )

    @property
    def default_domain(self) -> str:
        return extract_domain(self.definition.api_endpoint)

    def external_id(self, link: str) -> str:
        return url_to_external_id(link)

    def summary(self, entry: dict[str, Any]) -> str | None:
        return entry_summary(entry) or None

    def thumbnail(self, entry: dict[str, Any]) -> str | None:
        return None

    def author(self, entry: dict[str, Any]) -> str | None:
        return (entry.get("author") or "").strip() or None

    def tags(self, entry: dict[str, Any]) -> list[str]:
        return []
