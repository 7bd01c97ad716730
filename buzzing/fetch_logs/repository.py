"""Append-only repository for the fetch_logs table."""

import logging

from buzzing.fetch_logs.schemas import FetchLog, FetchStatus
from buzzing.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS fetch_logs (
    id          TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    source_name TEXT NOT NULL,
    status      TEXT NOT NULL CHECK (status IN ('success', 'failed')),
    items_count INTEGER NOT NULL DEFAULT 0,
    error_msg   TEXT,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_fetch_logs_source_created
    ON fetch_logs(source_name, created_at DESC);
"""

# Error messages can embed whole response bodies; keep rows bounded.
MAX_ERROR_LENGTH = 2000


def _record_to_log(record) -> FetchLog:
    return FetchLog(
        id=record["id"],
        source_name=record["source_name"],
        status=FetchStatus(record["status"]),
        items_count=record["items_count"],
        error_msg=record["error_msg"],
        duration_ms=record["duration_ms"],
        created_at=record["created_at"],
    )


class FetchLogRepository:
    """Writes one row per fetch run; rows are never updated or deleted here."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Fetch logs table ensured")

    async def append(self, log: FetchLog) -> str:
        error_msg = log.error_msg
        if error_msg is not None and len(error_msg) > MAX_ERROR_LENGTH:
            error_msg = error_msg[:MAX_ERROR_LENGTH]

        return await self._db.fetchval(
            """
            INSERT INTO fetch_logs (source_name, status, items_count, error_msg, duration_ms)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id
            """,
            log.source_name,
            log.status.value,
            log.items_count,
            error_msg,
            log.duration_ms,
        )

    async def recent(
        self, source_name: str | None = None, limit: int = 20
    ) -> list[FetchLog]:
        """Most recent runs, optionally for a single source."""
        if source_name:
            rows = await self._db.fetch(
                """
                SELECT * FROM fetch_logs WHERE source_name = $1
                ORDER BY created_at DESC LIMIT $2
                """,
                source_name,
                limit,
            )
        else:
            rows = await self._db.fetch(
                "SELECT * FROM fetch_logs ORDER BY created_at DESC LIMIT $1",
                limit,
            )
        return [_record_to_log(r) for r in rows]
