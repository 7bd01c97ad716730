"""
Product Hunt driver with a three-step fallback chain.

1. GraphQL API (needs PRODUCTHUNT_API_KEY): posts ordered by ranking
2. Homepage ``__NEXT_DATA__`` JSON: walk the object graph for product-shaped records
3. Homepage HTML: ``[data-test="post-item"]`` cards

Steps 2 and 3 read the same page. API failures fall through to scraping;
a homepage that cannot be loaded fails the run, while a page with no
recognizable products is a legitimate zero-item run.

Product Hunt exposes no stable "featured on" timestamp, so posts are dated
at the start of the day they were first seen and ordered by votes within it.
"""

import json
import logging
import re
from typing import Any

from bs4 import BeautifulSoup

from buzzing.ingestion.base_driver import (
    SourceDriver,
    stable_hash,
    start_of_day,
)
from buzzing.ingestion.http_client import HTTPClient, HTTPClientError
from buzzing.posts.schemas import CandidatePost, ScorePolicy, ScoreUpdateMode
from buzzing.sources.schemas import Source

logger = logging.getLogger(__name__)

PH_BASE_URL = "https://www.producthunt.com"
PH_GRAPHQL_URL = "https://api.producthunt.com/v2/api/graphql"

# Browser-like headers; the homepage serves a stripped page to bot agents
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

POSTS_QUERY = """
query {
  posts(first: 50, order: RANKING) {
    edges {
      node {
        id
        name
        slug
        tagline
        url
        website
        votesCount
        commentsCount
        createdAt
        thumbnail { url }
        media { url type }
        topics { edges { node { name } } }
      }
    }
  }
}
"""

MAX_TRAVERSE_DEPTH = 10

_NEXT_DATA_PATTERN = re.compile(r"__NEXT_DATA__\s*=\s*({.*?});?\s*$", re.DOTALL)


def product_page_url(slug: str) -> str:
    return f"{PH_BASE_URL}/posts/{slug}"


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _topic_names(topics: Any) -> list[str]:
    if not isinstance(topics, list):
        return []
    names = []
    for topic in topics:
        if isinstance(topic, str):
            names.append(topic)
        elif isinstance(topic, dict) and topic.get("name"):
            names.append(str(topic["name"]))
    return names


def parse_graphql_posts(data: Any) -> list[dict[str, Any]]:
    """Flatten the GraphQL ``posts`` connection into product records."""
    edges = (((data or {}).get("data") or {}).get("posts") or {}).get("edges") or []
    products = []
    for edge in edges:
        node = (edge or {}).get("node") or {}
        if not node.get("name"):
            continue

        media = node.get("media") or []
        first_image = next(
            (m.get("url") for m in media if m and m.get("type") == "image" and m.get("url")),
            None,
        )
        thumbnail = first_image or (node.get("thumbnail") or {}).get("url")
        topic_edges = (node.get("topics") or {}).get("edges") or []

        products.append(
            {
                "id": str(node.get("id")),
                "name": node["name"],
                "slug": node.get("slug") or str(node.get("id")),
                "tagline": node.get("tagline") or "",
                "website": node.get("website"),
                "thumbnail_url": thumbnail,
                "votes": _int(node.get("votesCount")),
                "topics": [e["node"]["name"] for e in topic_edges if e.get("node")],
            }
        )
    return products


def find_products(data: Any) -> list[dict[str, Any]]:
    """
    Walk an arbitrary JSON graph collecting product-shaped records.

    A record qualifies when it has ``name``, ``tagline`` and a vote count.
    Traversal stops below MAX_TRAVERSE_DEPTH levels.
    """
    products: list[dict[str, Any]] = []

    def traverse(obj: Any, depth: int) -> None:
        if depth > MAX_TRAVERSE_DEPTH:
            return
        if isinstance(obj, list):
            for item in obj:
                traverse(item, depth + 1)
            return
        if not isinstance(obj, dict):
            return

        has_votes = "votesCount" in obj or "votes_count" in obj
        if obj.get("name") and obj.get("tagline") and has_votes:
            name = str(obj["name"])
            slug = str(obj.get("slug") or obj.get("id") or stable_hash(name))
            thumbnail = obj.get("thumbnail")
            products.append(
                {
                    "id": str(obj.get("id") or slug),
                    "name": name,
                    "slug": slug,
                    "tagline": str(obj["tagline"]),
                    "website": obj.get("website"),
                    "thumbnail_url": thumbnail.get("url") if isinstance(thumbnail, dict) else None,
                    "votes": _int(obj.get("votesCount", obj.get("votes_count"))),
                    "topics": _topic_names(obj.get("topics")),
                }
            )

        for value in obj.values():
            if isinstance(value, (dict, list)):
                traverse(value, depth + 1)

    traverse(data, 0)

    # Apollo caches repeat the same product under several keys
    unique: dict[str, dict[str, Any]] = {}
    for product in products:
        unique.setdefault(product["id"], product)
    return list(unique.values())


def extract_next_data(soup: BeautifulSoup) -> Any | None:
    """Embedded Next.js page data, from the JSON script tag or an inline assignment."""
    tag = soup.find("script", id="__NEXT_DATA__")
    if tag is not None and tag.string:
        try:
            return json.loads(tag.string)
        except json.JSONDecodeError:
            logger.debug("Unparseable __NEXT_DATA__ script tag")

    for script in soup.find_all("script"):
        content = script.string or ""
        if "__NEXT_DATA__" not in content:
            continue
        match = _NEXT_DATA_PATTERN.search(content)
        if not match:
            continue
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            logger.debug("Unparseable inline __NEXT_DATA__ assignment")
    return None


def scrape_post_items(soup: BeautifulSoup) -> list[dict[str, Any]]:
    """Last resort: product cards in the rendered HTML."""
    products = []
    for element in soup.select('[data-test="post-item"]'):
        name_el = element.select_one('[data-test="post-name"]')
        tagline_el = element.select_one('[data-test="post-tagline"]')
        link = element.find("a", href=True)
        votes_el = element.select_one('[data-test="vote-button"]')

        name = name_el.get_text(strip=True) if name_el else ""
        if not name or link is None:
            continue

        href = link["href"]
        slug = href.rstrip("/").rsplit("/", 1)[-1] or stable_hash(name)
        votes_text = votes_el.get_text(strip=True) if votes_el else ""

        products.append(
            {
                "id": slug,
                "name": name,
                "slug": slug,
                "tagline": tagline_el.get_text(strip=True) if tagline_el else "",
                "website": None,
                "thumbnail_url": None,
                "votes": _int(re.sub(r"\D", "", votes_text)),
                "topics": [],
            }
        )
    return products


class ProductHuntDriver(SourceDriver):
    """Today's ranked launches on Product Hunt; score is the vote count."""

    score_policy = ScorePolicy(threshold=30, mode=ScoreUpdateMode.INCREASE_ONLY)

    def __init__(self, api_key: str | None = None, min_votes: int = 50):
        self._api_key = api_key
        self._min_votes = min_votes

    @property
    def definition(self) -> Source:
        return Source(
            name="ph",
            display_name="Product Hunt",
            description="The newest and most popular tech products and startup launches",
            api_endpoint=PH_BASE_URL,
            min_score=self._min_votes,
        )

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        products = await self._fetch_api(client)
        if products:
            return products
        return await self._fetch_homepage(client)

    async def _fetch_api(self, client: HTTPClient) -> list[dict[str, Any]]:
        if not self._api_key:
            return []
        try:
            data = await client.post_json(
                PH_GRAPHQL_URL,
                json_body={"query": POSTS_QUERY},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except HTTPClientError as e:
            logger.warning(f"Product Hunt API failed, falling back to homepage: {e}")
            return []

        products = parse_graphql_posts(data)
        logger.debug(f"Product Hunt API returned {len(products)} products")
        return products

    async def _fetch_homepage(self, client: HTTPClient) -> list[dict[str, Any]]:
        html = await client.get_text(PH_BASE_URL, headers=BROWSER_HEADERS)
        soup = BeautifulSoup(html, "html.parser")

        next_data = extract_next_data(soup)
        products = find_products(next_data) if next_data is not None else []
        if products:
            logger.debug(f"Found {len(products)} products in __NEXT_DATA__")
            return products

        products = scrape_post_items(soup)
        if not products:
            logger.warning("No products recognized on the Product Hunt homepage")
        return products

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        name = raw.get("name")
        if not name:
            return None

        tagline = raw.get("tagline")
        slug = raw.get("slug") or stable_hash(name)
        page_url = product_page_url(slug)

        return CandidatePost(
            external_id=raw.get("id") or slug,
            title_original=f"{name} - {tagline}" if tagline else name,
            source_url=raw.get("website") or page_url,
            origin_url=page_url,
            # Website links are PH redirects, so the real domain is unknown
            source_domain="producthunt.com",
            thumbnail_url=raw.get("thumbnail_url"),
            score=raw.get("votes", 0),
            tags=raw.get("topics", [])[:3] or ["Product"],
            published_at=start_of_day(),
        )

    def select(self, candidates: list[CandidatePost]) -> list[CandidatePost]:
        """Vote filter, then most-voted first."""
        return sorted(super().select(candidates), key=lambda c: c.score, reverse=True)
