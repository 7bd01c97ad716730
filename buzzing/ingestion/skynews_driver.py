"""Sky News: five section feeds merged into one source."""

import re
from datetime import datetime, timezone
from typing import Any

from buzzing.ingestion.base_driver import url_to_external_id
from buzzing.ingestion.rss_driver import RSSFeedDriver, enclosure_image, entry_published
from buzzing.sources.schemas import Source

SKYNEWS_FEEDS = [
    "https://feeds.skynews.com/feeds/rss/home.xml",
    "https://feeds.skynews.com/feeds/rss/uk.xml",
    "https://feeds.skynews.com/feeds/rss/world.xml",
    "https://feeds.skynews.com/feeds/rss/business.xml",
    "https://feeds.skynews.com/feeds/rss/technology.xml",
]

_TRAILING_ID = re.compile(r"/(\d+)$")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SkyNewsDriver(RSSFeedDriver):
    feed_urls = SKYNEWS_FEEDS

    @property
    def definition(self) -> Source:
        return Source(
            name="skynews",
            display_name="Sky News",
            description="British broadcaster: live news coverage from around the world",
            api_endpoint=SKYNEWS_FEEDS[0],
            min_score=0,
        )

    @property
    def default_domain(self) -> str:
        return "news.sky.com"

    def order_entries(self, entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Newest first across all sections."""
        return sorted(entries, key=lambda e: entry_published(e) or _EPOCH, reverse=True)

    def external_id(self, link: str) -> str:
        """Sky story URLs end in a numeric id."""
        match = _TRAILING_ID.search(link)
        return match.group(1) if match else url_to_external_id(link)

    def thumbnail(self, entry: dict[str, Any]) -> str | None:
        return enclosure_image(entry)
