"""Ars Technica (RSS)."""

import re
from typing import Any

from buzzing.ingestion.base_driver import html_to_text, url_to_external_id
from buzzing.ingestion.rss_driver import (
    RSSFeedDriver,
    entry_categories,
    entry_summary,
    media_image,
)
from buzzing.sources.schemas import Source

ARSTECHNICA_RSS_URL = "https://feeds.arstechnica.com/arstechnica/index"

_LAST_SEGMENT = re.compile(r"/([^/]+)/?$")

MAX_TAGS = 5
CONTENT_SUMMARY_LENGTH = 300


class ArsTechnicaDriver(RSSFeedDriver):
    feed_urls = [ARSTECHNICA_RSS_URL]

    @property
    def definition(self) -> Source:
        return Source(
            name="arstechnica",
            display_name="Ars Technica",
            description="Technology news and analysis: science, policy, gaming and IT",
            api_endpoint=ARSTECHNICA_RSS_URL,
            min_score=0,
        )

    @property
    def default_domain(self) -> str:
        return "arstechnica.com"

    def external_id(self, link: str) -> str:
        """Article slug, the last path segment."""
        match = _LAST_SEGMENT.search(link)
        return match.group(1) if match else url_to_external_id(link)

    def summary(self, entry: dict[str, Any]) -> str | None:
        snippet = entry_summary(entry)
        if snippet:
            return snippet
        content = entry.get("content") or []
        if content:
            return html_to_text(content[0].get("value"))[:CONTENT_SUMMARY_LENGTH] or None
        return None

    def thumbnail(self, entry: dict[str, Any]) -> str | None:
        return media_image(entry)

    def tags(self, entry: dict[str, Any]) -> list[str]:
        return entry_categories(entry)[:MAX_TAGS]
