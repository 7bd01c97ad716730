"""The Guardian driver (Content API, newest first)."""

import logging
from typing import Any

from buzzing.ingestion.base_driver import (
    SourceDriver,
    SourceFetchError,
    extract_domain,
    html_to_text,
    parse_iso_datetime,
    utc_now_minute,
)
from buzzing.ingestion.http_client import HTTPClient
from buzzing.posts.schemas import CandidatePost
from buzzing.sources.schemas import Source

logger = logging.getLogger(__name__)

GUARDIAN_API_BASE = "https://content.guardianapis.com"


def external_id_for(guardian_id: str) -> str:
    """Guardian ids are paths (``world/2024/jan/01/slug``); flatten them."""
    return guardian_id.replace("/", "-")


class GuardianDriver(SourceDriver):
    """Latest Guardian articles. News items carry no score."""

    def __init__(self, api_key: str = "test", limit: int = 20):
        self._api_key = api_key
        self._limit = limit

    @property
    def definition(self) -> Source:
        return Source(
            name="guardian",
            display_name="The Guardian",
            description="British daily newspaper: world news, politics, technology and culture",
            api_endpoint=GUARDIAN_API_BASE,
            min_score=0,
        )

    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        data = await client.get_json(
            f"{GUARDIAN_API_BASE}/search",
            params={
                "api-key": self._api_key,
                "page-size": self._limit,
                "order-by": "newest",
                "show-fields": "thumbnail,trailText",
            },
        )
        response = data.get("response") if isinstance(data, dict) else None
        results = response.get("results") if isinstance(response, dict) else None
        if not isinstance(results, list):
            raise SourceFetchError(self.name, "response has no results list")
        return results

    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        web_url = raw.get("webUrl")
        if not web_url or not raw.get("id"):
            return None

        fields = raw.get("fields") or {}
        return CandidatePost(
            external_id=external_id_for(raw["id"]),
            title_original=raw["webTitle"],
            summary_original=html_to_text(fields.get("trailText")),
            source_url=web_url,
            origin_url=web_url,
            source_domain=extract_domain(web_url, fallback="theguardian.com"),
            thumbnail_url=fields.get("thumbnail"),
            tags=[raw["sectionName"]] if raw.get("sectionName") else [],
            published_at=(
                parse_iso_datetime(raw.get("webPublicationDate")) or utc_now_minute()
            ),
        )
