"""Sources: the registry of external content origins."""

from buzzing.sources.repository import SourcesRepository
from buzzing.sources.schemas import DEFAULT_MAX_POSTS, Source

__all__ = [
    "DEFAULT_MAX_POSTS",
    "Source",
    "SourcesRepository",
]
