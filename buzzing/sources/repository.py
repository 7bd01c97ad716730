"""Database repository for the sources table."""

import logging

from buzzing.sources.schemas import Source
from buzzing.storage.database import Database, rows_affected

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id           TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    name         TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL DEFAULT '',
    description  TEXT NOT NULL DEFAULT '',
    api_endpoint TEXT NOT NULL DEFAULT '',
    min_score    INTEGER NOT NULL DEFAULT 100,
    max_posts    INTEGER NOT NULL DEFAULT 300,
    is_active    BOOLEAN NOT NULL DEFAULT TRUE,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

# Concurrent first runs of the same source race here; DO NOTHING plus the
# follow-up SELECT makes the loser read the winner's row instead of failing.
_INSERT_IF_ABSENT_SQL = """
INSERT INTO sources (name, display_name, description, api_endpoint, min_score, max_posts, is_active)
VALUES ($1, $2, $3, $4, $5, $6, $7)
ON CONFLICT (name) DO NOTHING
RETURNING *
"""


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        id=record["id"],
        name=record["name"],
        display_name=record["display_name"],
        description=record["description"],
        api_endpoint=record["api_endpoint"],
        min_score=record["min_score"],
        max_posts=record["max_posts"],
        is_active=record["is_active"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SourcesRepository:
    """Lookup and lazy creation of source rows."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def get_or_create(self, source: Source) -> Source:
        """Return the stored row for ``source.name``, inserting the defaults if absent.

        Existing rows are returned unchanged; their configuration (e.g.
        ``max_posts``) takes precedence over the driver's defaults.
        """
        row = await self._db.fetchrow(
            _INSERT_IF_ABSENT_SQL,
            source.name,
            source.display_name,
            source.description,
            source.api_endpoint,
            source.min_score,
            source.max_posts,
            source.is_active,
        )
        if row is not None:
            logger.info("Registered source %s", source.name)
            return _record_to_source(row)

        existing = await self.get_by_name(source.name)
        if existing is None:
            # Only possible if the row was deleted between the two statements
            raise RuntimeError(f"Source {source.name} vanished during registration")
        return existing

    async def get_by_name(self, name: str) -> Source | None:
        row = await self._db.fetchrow("SELECT * FROM sources WHERE name = $1", name)
        return _record_to_source(row) if row else None

    async def list_sources(self, active_only: bool = False) -> list[Source]:
        where = " WHERE is_active = TRUE" if active_only else ""
        rows = await self._db.fetch(f"SELECT * FROM sources{where} ORDER BY name")
        return [_record_to_source(r) for r in rows]

    async def set_active(self, name: str, active: bool) -> bool:
        """Toggle a source's active flag. Returns True if a row was updated."""
        result = await self._db.execute(
            """
            UPDATE sources SET is_active = $2, updated_at = NOW()
            WHERE name = $1 AND is_active <> $2
            """,
            name,
            active,
        )
        return rows_affected(result) == 1
