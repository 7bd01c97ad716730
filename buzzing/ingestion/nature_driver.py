"""Nature journal news and research highlights (RSS)."""

import re

from buzzing.ingestion.base_driver import url_to_external_id
from buzzing.ingestion.rss_driver import RSSFeedDriver
from buzzing.sources.schemas import Source

NATURE_RSS_URL = "https://www.nature.com/nature.rss"

_ARTICLE_ID = re.compile(r"/articles?/([\w-]+)")


class NatureDriver(RSSFeedDriver):
    feed_urls = [NATURE_RSS_URL]

    @property
    def definition(self) -> Source:
        return Source(
            name="nature",
            display_name="Nature",
            description="International science journal: research news and discoveries",
            api_endpoint=NATURE_RSS_URL,
            min_score=0,
        )

    def external_id(self, link: str) -> str:
        """Article slug (``d41586-024-00001-x``) when the link has one."""
        match = _ARTICLE_ID.search(link)
        return match.group(1) if match else url_to_external_id(link)
