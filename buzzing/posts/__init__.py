"""Posts: normalized content items, their score policy, and storage."""

from buzzing.posts.repository import ConflictError, PostRepository
from buzzing.posts.schemas import (
    CandidatePost,
    ExistingPost,
    Post,
    ScorePolicy,
    ScoreUpdateMode,
)

__all__ = [
    "CandidatePost",
    "ConflictError",
    "ExistingPost",
    "Post",
    "PostRepository",
    "ScorePolicy",
    "ScoreUpdateMode",
]
