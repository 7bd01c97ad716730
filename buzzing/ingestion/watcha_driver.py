"""
Watcha (watcha.cn) driver: hot AI products from a Chinese review community.

Merges the hot list (mandatory) with the newest products whose hot score
is at least NEW_PRODUCT_MIN_HOT_SCORE (best-effort). Items are ordered by
listing time, then hot score, so new products get exposure next to the
established ones. The product's own website is only available from the
detail endpoint, which is queried for items about to be inserted.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from buzzing.ingestion.base_driver import (
    SourceDriver,
    SourceFetchError,
    extract_domain,
    start_of_day,
)
from buzzing.ingestion.http_client import HTTPClient, HTTPClientError
from buzzing.posts.schemas import CandidatePost, ScorePolicy, ScoreUpdateMode
from buzzing.sources.schemas import Source
from buzzing.translation.schemas import Locale

logger = logging.getLogger(__name__)

WATCHA_API_BASE = "https://watcha.cn/api/v2"
WATCHA_BASE_URL = "https://watcha.cn"

NEW_PRODUCTS_LIMIT = 30
NEW_PRODUCT_MIN_HOT_SCORE = 10
MAX_TAGS = 4

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def product_page_url(slug: str) -> str:
    return f"{WATCHA_BASE_URL}/products/{slug}"


def hot_score(product: dict[str, Any]) -> float:
    stats = product.get("stats")
    if not isinstance(stats, dict):
        return 0.0
    try:
        return float(stats.get("hot_score") or 0)
    except (TypeError, ValueError):
        return 0.0


def _created_at(product: dict[str, Any]) -> datetime:
    value = product.get("create_at")
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _published(items: list[Any]) -> list[dict[str, Any]]:
    return [
        item
        for item in items
        if isinstance(item, dict) and item.get("status") == "PUBLISHED"
    ]


class WatchaDriver(SourceDriver):
    """AI product community; score is the rounded hot score."""

    score_policy = ScorePolicy(threshold=20, mode=ScoreUpdateMode.INCREASE_ONLY)

    def __init__(self, limit: int = 30, include_new: bool = True):
        self._limit = limit
        self._include_new = include_new
        self._slugs: dict[str, str] = {}

    @property
    def definition(self) -> Source:
        return Source(
            name="watcha",
            display_name="观猹",
            description="AI product review community: the newest and hottest AI applications",
            api_endpoint=WATCHA_API_BASE,
            min_score=0,
        )

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        hot = await client.get_json(
            f"{WATCHA_API_BASE}/hot/products",
            params={"skip": 0, "limit": self._limit},
        )
        products = _published(self._items(hot))

        if self._include_new:
            products.extend(await self._fetch_new(client))

        unique: dict[Any, dict[str, Any]] = {}
        for product in products:
            unique.setdefault(product.get("id"), product)

        return sorted(
            unique.values(),
            key=lambda p: (_created_at(p), hot_score(p)),
            reverse=True,
        )

    async def _fetch_new(self, client: HTTPClient) -> list[dict[str, Any]]:
        try:
            data = await client.get_json(
                f"{WATCHA_API_BASE}/products",
                params={"skip": 0, "limit": NEW_PRODUCTS_LIMIT, "order_by": "publish_at"},
            )
            items = _published(self._items(data))
        except (HTTPClientError, SourceFetchError) as e:
            logger.warning(f"Watcha new products unavailable: {e}")
            return []
        return [p for p in items if hot_score(p) >= NEW_PRODUCT_MIN_HOT_SCORE]

    def _items(self, payload: Any) -> list[Any]:
        data = payload.get("data") if isinstance(payload, dict) else None
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise SourceFetchError(self.name, "response has no data.items list")
        return items

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        slug = raw.get("slug")
        name = raw.get("name")
        if not slug or not name:
            return None

        external_id = str(raw["id"])
        self._slugs[external_id] = slug

        slogan = raw.get("slogan")
        organization = raw.get("organization") or None
        tags = [c["name"] for c in raw.get("categories") or [] if c.get("name")][:3]
        if organization:
            tags.insert(0, organization)

        page_url = product_page_url(slug)
        return CandidatePost(
            external_id=external_id,
            title_original=f"{name} - {slogan}" if slogan else name,
            original_lang=Locale.ZH,
            source_url=page_url,
            origin_url=page_url,
            source_domain="watcha.cn",
            thumbnail_url=raw.get("image_url") or raw.get("avatar_url") or None,
            author=organization,
            score=round(hot_score(raw)),
            tags=tags[:MAX_TAGS],
            published_at=start_of_day(),
        )

    async def enrich(self, client: HTTPClient, candidate: CandidatePost) -> CandidatePost:
        """Swap in the product's own website when the detail endpoint has one."""
        slug = self._slugs.get(candidate.external_id)
        if not slug:
            return candidate

        try:
            detail = await client.get_json(f"{WATCHA_API_BASE}/products/{slug}")
        except HTTPClientError as e:
            logger.debug(f"Watcha detail for {slug} unavailable: {e}")
            return candidate

        data = detail.get("data") if isinstance(detail, dict) else None
        website = data.get("website_url") if isinstance(data, dict) else None
        if not website:
            return candidate

        return candidate.model_copy(
            update={
                "source_url": website,
                "source_domain": extract_domain(website, fallback="watcha.cn"),
            }
        )
