"""Fetch logs: append-only audit of source fetch runs."""

from buzzing.fetch_logs.repository import FetchLogRepository
from buzzing.fetch_logs.schemas import FetchLog, FetchStatus

__all__ = ["FetchLog", "FetchLogRepository", "FetchStatus"]
