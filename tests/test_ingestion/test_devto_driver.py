"""Tests for DevtoDriver."""

import httpx
import pytest
import respx

from buzzing.ingestion.devto_driver import DEVTO_API_BASE, DevtoDriver
from buzzing.ingestion.http_client import HTTPClient, RetryConfig
from buzzing.posts.schemas import ExistingPost


def _article(article_id: int = 1834, reactions: int = 120, **overrides) -> dict:
    article = {
        "id": article_id,
        "title": "Understanding the JavaScript event loop",
        "description": "A visual walkthrough.",
        "url": f"https://dev.to/ada/event-loop-{article_id}",
        "canonical_url": f"https://dev.to/ada/event-loop-{article_id}",
        "cover_image": "https://media.dev.to/cover.png",
        "public_reactions_count": reactions,
        "published_at": "2024-05-01T09:30:00Z",
        "tag_list": ["javascript", "webdev"],
        "user": {"name": "Ada", "username": "ada"},
    }
    article.update(overrides)
    return article


class TestDevtoFetch:
    @pytest.mark.asyncio
    @respx.mock
    async def test_requests_weekly_top(self):
        route = respx.get(f"{DEVTO_API_BASE}/articles").mock(
            return_value=httpx.Response(200, json=[_article()])
        )

        async with HTTPClient(retry_config=RetryConfig(max_retries=0)) as client:
            raw = await DevtoDriver(limit=15).fetch_raw(client)

        assert len(raw) == 1
        url = str(route.calls.last.request.url)
        assert "per_page=15" in url
        assert "top=7" in url


class TestDevtoNormalize:
    def test_fields(self):
        post = DevtoDriver().normalize(_article())

        assert post.external_id == "1834"
        assert post.summary_original == "A visual walkthrough."
        assert post.source_domain == "dev.to"
        assert post.thumbnail_url == "https://media.dev.to/cover.png"
        assert post.author == "Ada"
        assert post.author_url == "https://dev.to/ada"
        assert post.score == 120
        assert post.tags == ["javascript", "webdev"]

    def test_canonical_url_is_the_content_url(self):
        post = DevtoDriver().normalize(
            _article(canonical_url="https://www.ada.dev/blog/event-loop")
        )
        assert post.source_url == "https://www.ada.dev/blog/event-loop"
        assert post.origin_url == "https://dev.to/ada/event-loop-1834"
        assert post.source_domain == "ada.dev"

    def test_comma_separated_tags(self):
        post = DevtoDriver().normalize(_article(tag_list="python, beginners"))
        assert post.tags == ["python", "beginners"]

    def test_min_reactions(self):
        driver = DevtoDriver(min_reactions=20)
        candidates = [driver.normalize(_article(1, 19)), driver.normalize(_article(2, 20))]
        assert [c.external_id for c in driver.select(candidates)] == ["2"]

    def test_absolute_dead_band_of_five(self):
        driver = DevtoDriver()
        existing = ExistingPost(id="p", score=100)
        assert driver.should_rescore(existing, driver.normalize(_article(reactions=106)))
        assert driver.should_rescore(existing, driver.normalize(_article(reactions=94)))
        assert not driver.should_rescore(existing, driver.normalize(_article(reactions=105)))
