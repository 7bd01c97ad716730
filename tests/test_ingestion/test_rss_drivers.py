"""Tests for the feed-backed drivers (Nature, Sky News, Ars Technica)."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from buzzing.ingestion.arstechnica_driver import ARSTECHNICA_RSS_URL, ArsTechnicaDriver
from buzzing.ingestion.base_driver import SourceFetchError
from buzzing.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from buzzing.ingestion.nature_driver import NATURE_RSS_URL, NatureDriver
from buzzing.ingestion.rss_driver import parse_feed
from buzzing.ingestion.skynews_driver import SKYNEWS_FEEDS, SkyNewsDriver

NATURE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Nature</title>
    <item>
      <title>Ancient genomes rewrite the history of the Americas</title>
      <link>https://www.nature.com/articles/d41586-024-01234-5</link>
      <description>&lt;p&gt;Sequencing of &lt;b&gt;30&lt;/b&gt; individuals.&lt;/p&gt;</description>
      <pubDate>Wed, 01 May 2024 14:05:33 GMT</pubDate>
    </item>
    <item>
      <title>Editorial board</title>
      <link>https://www.nature.com/nature/editors</link>
      <pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title></title>
      <link>https://www.nature.com/articles/untitled</link>
    </item>
  </channel>
</rss>
"""


def _sky_feed(*items: tuple[str, str, str]) -> str:
    body = "".join(
        f"""
    <item>
      <title>{title}</title>
      <link>{link}</link>
      <pubDate>{date}</pubDate>
      <enclosure url="https://e3.365dm.com/24/05/story.jpg" length="0" type="image/jpeg"/>
    </item>"""
        for title, link, date in items
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Sky</title>{body}</channel></rss>'


ARS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Ars Technica</title>
    <item>
      <title>The fastest supercomputer just got faster</title>
      <link>https://arstechnica.com/science/2024/05/fastest-supercomputer-faster/</link>
      <dc:creator>Jane Doe</dc:creator>
      <description>Exascale is the new normal.</description>
      <pubDate>Wed, 01 May 2024 15:30:00 +0000</pubDate>
      <category>Science</category>
      <category>Supercomputers</category>
      <category>HPC</category>
      <category>Energy</category>
      <category>DOE</category>
      <category>Frontier</category>
      <media:thumbnail url="https://cdn.arstechnica.net/frontier.jpg"/>
    </item>
  </channel>
</rss>
"""


def _client() -> HTTPClient:
    return HTTPClient(retry_config=RetryConfig(max_retries=0))


class TestParseFeed:
    def test_malformed_without_entries_raises(self):
        with pytest.raises(SourceFetchError, match="malformed feed"):
            parse_feed("<html><body>Bad gateway", "https://x/feed", "nature")

    def test_valid_feed(self):
        entries = parse_feed(NATURE_FEED, NATURE_RSS_URL, "nature")
        assert len(entries) == 3


class TestNatureDriver:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_and_normalize(self):
        respx.get(NATURE_RSS_URL).mock(return_value=httpx.Response(200, text=NATURE_FEED))
        driver = NatureDriver()

        async with _client() as client:
            raw = await driver.fetch_raw(client)

        posts = [driver.normalize(entry) for entry in raw]
        assert posts[2] is None  # no title

        article = posts[0]
        assert article.external_id == "d41586-024-01234-5"
        assert article.summary_original == "Sequencing of 30 individuals."
        assert article.source_domain == "nature.com"
        assert article.score == 0
        assert article.published_at == datetime(2024, 5, 1, 14, 5, tzinfo=timezone.utc)

        editorial = posts[1]
        assert editorial.external_id.endswith("nature-com-nature-editors")
        assert editorial.summary_original is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_limit(self):
        respx.get(NATURE_RSS_URL).mock(return_value=httpx.Response(200, text=NATURE_FEED))

        async with _client() as client:
            raw = await NatureDriver(limit=1).fetch_raw(client)

        assert len(raw) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_feed_failure_raises(self):
        respx.get(NATURE_RSS_URL).mock(return_value=httpx.Response(500))

        async with _client() as client:
            with pytest.raises(HTTPClientError):
                await NatureDriver().fetch_raw(client)


class TestSkyNewsDriver:
    def _mock_feeds(self, feeds: dict[str, httpx.Response]) -> None:
        for url in SKYNEWS_FEEDS:
            respx.get(url).mock(return_value=feeds.get(url, httpx.Response(200, text=_sky_feed())))

    @pytest.mark.asyncio
    @respx.mock
    async def test_merges_sections_newest_first(self):
        shared = ("Budget announced", "https://news.sky.com/story/budget-13100001", "Wed, 01 May 2024 09:00:00 GMT")
        self._mock_feeds(
            {
                SKYNEWS_FEEDS[0]: httpx.Response(
                    200,
                    text=_sky_feed(
                        shared,
                        ("Storm warning", "https://news.sky.com/story/storm/13100002", "Wed, 01 May 2024 11:00:00 GMT"),
                    ),
                ),
                SKYNEWS_FEEDS[3]: httpx.Response(
                    200,
                    text=_sky_feed(
                        shared,
                        ("Markets rally", "https://news.sky.com/story/markets-13100003", "Wed, 01 May 2024 10:00:00 GMT"),
                    ),
                ),
            }
        )
        driver = SkyNewsDriver()

        async with _client() as client:
            raw = await driver.fetch_raw(client)

        assert [e["title"] for e in raw] == ["Storm warning", "Markets rally", "Budget announced"]

        storm = driver.normalize(raw[0])
        assert storm.external_id == "13100002"
        assert storm.source_domain == "news.sky.com"
        assert storm.thumbnail_url.startswith("https://e3.365dm.com/")

        markets = driver.normalize(raw[1])
        assert markets.external_id.endswith("story-markets-13100003")

    @pytest.mark.asyncio
    @respx.mock
    async def test_one_failing_section_is_tolerated(self):
        self._mock_feeds(
            {
                SKYNEWS_FEEDS[1]: httpx.Response(503),
                SKYNEWS_FEEDS[2]: httpx.Response(
                    200,
                    text=_sky_feed(("World", "https://news.sky.com/story/world/1", "Wed, 01 May 2024 09:00:00 GMT")),
                ),
            }
        )

        async with _client() as client:
            raw = await SkyNewsDriver().fetch_raw(client)

        assert [e["title"] for e in raw] == ["World"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_all_sections_failing_raises(self):
        self._mock_feeds({url: httpx.Response(502) for url in SKYNEWS_FEEDS})

        async with _client() as client:
            with pytest.raises(HTTPClientError):
                await SkyNewsDriver().fetch_raw(client)


class TestArsTechnicaDriver:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_and_normalize(self):
        respx.get(ARSTECHNICA_RSS_URL).mock(return_value=httpx.Response(200, text=ARS_FEED))
        driver = ArsTechnicaDriver()

        async with _client() as client:
            raw = await driver.fetch_raw(client)

        post = driver.normalize(raw[0])
        assert post.external_id == "fastest-supercomputer-faster"
        assert post.author == "Jane Doe"
        assert post.summary_original == "Exascale is the new normal."
        assert post.thumbnail_url == "https://cdn.arstechnica.net/frontier.jpg"
        assert post.tags == ["Science", "Supercomputers", "HPC", "Energy", "DOE"]
        assert post.source_domain == "arstechnica.com"

    def test_summary_falls_back_to_content(self):
        entry = {"summary": "", "content": [{"value": "<p>" + "word " * 100 + "</p>"}]}
        summary = ArsTechnicaDriver().summary(entry)
        assert len(summary) == 300
        assert summary.startswith("word word")

    def test_summary_absent(self):
        assert ArsTechnicaDriver().summary({}) is None
