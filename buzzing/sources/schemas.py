"""Data models for the sources module."""

from dataclasses import dataclass
from datetime import datetime

DEFAULT_MAX_POSTS = 300


@dataclass
class Source:
    """An external content origin (Hacker News, Lobsters, The Guardian, ...).

    ``name`` is the stable slug and the unique key. Drivers declare a Source
    with their defaults; the stored row (with ``id``) is created lazily on
    the first fetch and is never deleted by the pipeline.
    """

    name: str
    display_name: str = ""
    description: str = ""
    api_endpoint: str = ""
    min_score: int = 100
    max_posts: int = DEFAULT_MAX_POSTS
    is_active: bool = True
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
