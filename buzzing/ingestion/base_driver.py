"""
Source driver interface and shared normalization helpers.

A driver owns everything that is specific to one external origin:
- fetch_raw(): pull raw items over HTTP (REST, GraphQL, RSS or HTML)
- normalize(): map one raw item to a CandidatePost, or None to skip it
- select(): source-specific filtering and ordering of the candidates
- enrich(): optional extra lookups, performed only for items not yet stored
- score_policy: dead-band for re-scoring items that already exist

The shared fetch -> normalize -> reconcile -> evict -> log skeleton lives
in IngestionPipeline; drivers never touch storage.
"""

import hashlib
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from buzzing.ingestion.http_client import HTTPClient
from buzzing.posts.schemas import CandidatePost, ExistingPost, ScorePolicy
from buzzing.sources.schemas import Source

logger = logging.getLogger(__name__)


class SourceFetchError(Exception):
    """A driver could not obtain a usable listing from its origin."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class SourceDriver(ABC):
    """
    Abstract base class for source drivers.

    Subclasses must implement:
        - definition: the Source row created on first fetch
        - fetch_raw(): raw items from the origin
        - normalize(): raw item -> CandidatePost (None to skip)

    Subclasses may override select(), enrich() and score_policy.
    """

    # None means items from this source never change after insert
    score_policy: ScorePolicy | None = None

    @property
    @abstractmethod
    def definition(self) -> Source:
        """Defaults used to create the stored source row."""
        ...

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    async def fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        """
        Fetch raw items from the origin.

        Raises:
            HTTPClientError: On transport failure of a mandatory request.
            SourceFetchError: When the origin returned nothing usable.
        """
        ...

    @abstractmethod
    def normalize(self, raw: dict[str, Any]) -> CandidatePost | None:
        """
        Map one raw item to a CandidatePost.

        Return None for items that should be skipped. May raise for
        malformed items; the pipeline counts those as skipped too.
        """
        ...

    def should_rescore(self, existing: ExistingPost, candidate: CandidatePost) -> bool:
        """Whether a re-seen item's score is worth writing back."""
        if self.score_policy is None:
            return False
        return self.score_policy.should_update(existing.score, candidate.score)

    def select(self, candidates: list[CandidatePost]) -> list[CandidatePost]:
        """Filter and order normalized candidates. Default drops items below min_score."""
        min_score = self.definition.min_score
        return [c for c in candidates if c.score >= min_score]

    async def enrich(
        self, client: HTTPClient, candidate: CandidatePost
    ) -> CandidatePost:
        """Extra per-item lookups for items about to be inserted."""
        return candidate


# Shared normalization helpers


def extract_domain(url: str | None, fallback: str = "") -> str:
    """
    Hostname of ``url`` without a leading ``www.``.

    Returns ``fallback`` when the URL is empty or has no host.
    """
    if not url:
        return fallback
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return fallback
    if host.startswith("www."):
        host = host[4:]
    return host or fallback


def truncate_to_minute(dt: datetime) -> datetime:
    """Convert to UTC and drop seconds and microseconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(second=0, microsecond=0)


def start_of_day(now: datetime | None = None) -> datetime:
    """UTC midnight of the given instant (default: now)."""
    now = now or datetime.now(timezone.utc)
    return truncate_to_minute(now).replace(hour=0, minute=0)


def utc_now_minute() -> datetime:
    return truncate_to_minute(datetime.now(timezone.utc))


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp (``Z`` suffix allowed) to a minute-truncated UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return truncate_to_minute(parsed)


def parse_unix_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return truncate_to_minute(datetime.fromtimestamp(float(value), tz=timezone.utc))
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def clean_text(text: str) -> str:
    """
    Clean text content by removing excessive whitespace and control characters.

    Args:
        text: Raw text content

    Returns:
        Cleaned text
    """
    text = " ".join(text.split())
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    return text.strip()


def html_to_text(markup: str | None) -> str:
    """Strip tags and collapse whitespace."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    return clean_text(soup.get_text(" "))


def stable_hash(value: str) -> str:
    """
    Generate a stable, deterministic hash from a string.

    Uses SHA256 truncated to 16 hex characters. Unlike Python's built-in
    hash(), this is deterministic across process restarts.
    """
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def url_to_external_id(url: str, max_length: int = 50) -> str:
    """Deterministic id for items with no native one: sanitized URL tail."""
    return re.sub(r"[^a-zA-Z0-9]", "-", url)[-max_length:]
