"""
Content-addressed translation cache backed by the translation_cache table.

Entries are keyed by (md5("{text}:{target}"), target) and are insert-only:
the first successful translation of a text into a locale is reused forever.
"""

import hashlib
import logging

from buzzing.storage.database import Database
from buzzing.translation.schemas import Locale

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS translation_cache (
    id              TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    text_hash       TEXT NOT NULL,
    source_lang     TEXT,
    target_lang     TEXT NOT NULL,
    original_text   TEXT NOT NULL,
    translated_text TEXT NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT translation_cache_hash_target_key UNIQUE (text_hash, target_lang)
);
"""


def hash_text(text: str, target: Locale) -> str:
    """MD5 hex digest of ``"{text}:{target}"``."""
    return hashlib.md5(f"{text}:{target.value}".encode("utf-8")).hexdigest()


class TranslationCacheRepository:
    """Lookup and insert-if-absent for cached translations."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Translation cache table ensured")

    async def get(self, text: str, target: Locale) -> str | None:
        return await self._db.fetchval(
            """
            SELECT translated_text FROM translation_cache
            WHERE text_hash = $1 AND target_lang = $2
            """,
            hash_text(text, target),
            target.value,
        )

    async def put(
        self,
        text: str,
        translated: str,
        source: Locale,
        target: Locale,
    ) -> None:
        """Store a translation; an existing entry for the key is kept as-is."""
        await self._db.execute(
            """
            INSERT INTO translation_cache
                (text_hash, source_lang, target_lang, original_text, translated_text)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (text_hash, target_lang) DO NOTHING
            """,
            hash_text(text, target),
            source.value,
            target.value,
            text,
            translated,
        )

    async def count(self) -> int:
        return await self._db.fetchval("SELECT COUNT(*) FROM translation_cache")
