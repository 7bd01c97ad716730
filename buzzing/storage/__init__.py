"""Storage layer: the shared asyncpg connection pool."""

from buzzing.storage.database import Database, rows_affected

__all__ = ["Database", "rows_affected"]
