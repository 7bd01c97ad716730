"""
Database repository for the posts table.

The only path through which the pipeline touches stored posts. It owns the
dedup probe, the guarded insert, the threshold-gated score update, and the
per-source retention eviction, so every driver behaves identically.
"""

import logging
from typing import Any

import asyncpg

from buzzing.posts.schemas import ExistingPost, Post, ScoreUpdateMode
from buzzing.storage.database import Database, rows_affected

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id               TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    source_id        TEXT NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    external_id      TEXT NOT NULL,
    title_original   TEXT NOT NULL,
    summary_original TEXT,
    original_lang    TEXT NOT NULL DEFAULT 'en',
    source_url       TEXT NOT NULL,
    origin_url       TEXT,
    source_domain    TEXT NOT NULL DEFAULT '',
    thumbnail_url    TEXT,
    author           TEXT,
    author_url       TEXT,
    score            INTEGER NOT NULL DEFAULT 0,
    tags             TEXT[] NOT NULL DEFAULT '{}',
    translations     JSONB,
    is_translated    BOOLEAN NOT NULL DEFAULT FALSE,
    translated_at    TIMESTAMPTZ,
    published_at     TIMESTAMPTZ NOT NULL,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT posts_source_external_key UNIQUE (source_id, external_id)
);

CREATE INDEX IF NOT EXISTS idx_posts_source_published
    ON posts(source_id, published_at DESC, score DESC);
CREATE INDEX IF NOT EXISTS idx_posts_pending_translation
    ON posts(published_at DESC, score DESC) WHERE is_translated = FALSE;
"""

_INSERT_SQL = """
INSERT INTO posts (
    source_id, external_id, title_original, summary_original, original_lang,
    source_url, origin_url, source_domain, thumbnail_url, author, author_url,
    score, tags, translations, is_translated, translated_at, published_at
) VALUES (
    $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17
)
RETURNING id
"""

# Delta predicates evaluated against the stored score inside the UPDATE,
# so a concurrent writer cannot slip a stale comparison through.
_SCORE_PREDICATES = {
    ScoreUpdateMode.INCREASE_ONLY: "$2 - score > $3",
    ScoreUpdateMode.ABSOLUTE: "ABS($2 - score) > $3",
}

# Retention and display order; id breaks exact ties deterministically.
_RETENTION_ORDER = "published_at DESC, score DESC, id"


class ConflictError(Exception):
    """A post with the same (source_id, external_id) already exists."""

    def __init__(self, source_id: str, external_id: str):
        super().__init__(
            f"Post already exists for source {source_id} with external id {external_id}"
        )
        self.source_id = source_id
        self.external_id = external_id


def _record_to_post(record: Any) -> Post:
    """Convert an asyncpg Record to a Post."""
    return Post(
        id=record["id"],
        source_id=record["source_id"],
        external_id=record["external_id"],
        title_original=record["title_original"],
        summary_original=record["summary_original"],
        original_lang=record["original_lang"],
        source_url=record["source_url"],
        origin_url=record["origin_url"],
        source_domain=record["source_domain"],
        thumbnail_url=record["thumbnail_url"],
        author=record["author"],
        author_url=record["author_url"],
        score=record["score"],
        tags=list(record["tags"] or []),
        translations=record["translations"],
        is_translated=record["is_translated"],
        translated_at=record["translated_at"],
        published_at=record["published_at"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class PostRepository:
    """Dedup, insert, re-score, evict and list operations on posts."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the posts table and indexes (idempotent). Requires sources."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Posts table ensured")

    async def exists(self, source_id: str, external_id: str) -> bool:
        return await self._db.fetchval(
            "SELECT EXISTS(SELECT 1 FROM posts WHERE source_id = $1 AND external_id = $2)",
            source_id,
            external_id,
        )

    async def find_existing(
        self, source_id: str, external_id: str
    ) -> ExistingPost | None:
        """Look up the id and current score of an already-stored item."""
        row = await self._db.fetchrow(
            "SELECT id, score FROM posts WHERE source_id = $1 AND external_id = $2",
            source_id,
            external_id,
        )
        if row is None:
            return None
        return ExistingPost(id=row["id"], score=row["score"])

    async def insert(self, post: Post) -> str:
        """
        Insert a new post and return its id.

        Raises:
            ConflictError: If (source_id, external_id) is already stored.
                Callers probe with find_existing() first; this is the
                storage-level safety net under concurrent runs.
        """
        try:
            post_id = await self._db.fetchval(
                _INSERT_SQL,
                post.source_id,
                post.external_id,
                post.title_original,
                post.summary_original,
                post.original_lang.value,
                post.source_url,
                post.origin_url,
                post.source_domain,
                post.thumbnail_url,
                post.author,
                post.author_url,
                post.score,
                post.tags,
                post.translations,
                post.is_translated,
                post.translated_at,
                post.published_at,
            )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(post.source_id, post.external_id) from e
        return post_id

    async def update_score_if_threshold(
        self,
        post_id: str,
        new_score: int,
        threshold: int,
        mode: ScoreUpdateMode,
    ) -> bool:
        """
        Write ``new_score`` only if its delta from the stored score is
        strictly greater than ``threshold`` under ``mode``.

        Returns:
            True if the row was updated, False for a no-op.
        """
        predicate = _SCORE_PREDICATES[mode]
        result = await self._db.execute(
            f"""
            UPDATE posts SET score = $2, updated_at = NOW()
            WHERE id = $1 AND {predicate}
            """,
            post_id,
            new_score,
            threshold,
        )
        return rows_affected(result) == 1

    async def evict_excess(self, source_id: str, max_posts: int) -> int:
        """
        Delete every post of a source beyond position ``max_posts`` in
        retention order (published_at desc, score desc).

        Returns:
            Number of deleted rows (0 when the source is within its cap).
        """
        if max_posts < 0:
            raise ValueError(f"max_posts must be non-negative, got {max_posts}")

        rows = await self._db.fetch(
            f"SELECT id FROM posts WHERE source_id = $1 ORDER BY {_RETENTION_ORDER}",
            source_id,
        )
        if len(rows) <= max_posts:
            return 0

        doomed = [r["id"] for r in rows[max_posts:]]
        result = await self._db.execute(
            "DELETE FROM posts WHERE id = ANY($1::text[])",
            doomed,
        )
        deleted = rows_affected(result)
        logger.info(
            "Evicted %d posts for source %s (cap %d)", deleted, source_id, max_posts
        )
        return deleted

    async def list_by_source(
        self, source_id: str, limit: int = 30, offset: int = 0
    ) -> list[Post]:
        """Page through a source's posts in the stable display order."""
        rows = await self._db.fetch(
            f"""
            SELECT * FROM posts WHERE source_id = $1
            ORDER BY {_RETENTION_ORDER}
            LIMIT $2 OFFSET $3
            """,
            source_id,
            limit,
            offset,
        )
        return [_record_to_post(r) for r in rows]

    async def count_by_source(self, source_id: str) -> int:
        return await self._db.fetchval(
            "SELECT COUNT(*) FROM posts WHERE source_id = $1", source_id
        )

    async def list_pending_translation(self, limit: int = 50) -> list[Post]:
        """Posts still waiting for translation, most recent first."""
        rows = await self._db.fetch(
            """
            SELECT * FROM posts WHERE is_translated = FALSE
            ORDER BY published_at DESC, score DESC
            LIMIT $1
            """,
            limit,
        )
        return [_record_to_post(r) for r in rows]

    async def save_translations(
        self,
        post_id: str,
        translations: dict[str, dict[str, Any]],
        is_translated: bool,
    ) -> bool:
        """
        Store a post's translation map.

        ``is_translated=False`` keeps the post in the pending sweep; the sweep
        itself always passes True.
        """
        result = await self._db.execute(
            """
            UPDATE posts SET
                translations = $2,
                is_translated = $3,
                translated_at = CASE WHEN $3 THEN NOW() ELSE translated_at END,
                updated_at = NOW()
            WHERE id = $1
            """,
            post_id,
            translations,
            is_translated,
        )
        return rows_affected(result) == 1
