"""Data models for the fetch audit log."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FetchStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class FetchLog:
    """Outcome of one source fetch run.

    ``items_count`` is the number of new posts the run inserted.
    """

    source_name: str
    status: FetchStatus
    items_count: int = 0
    duration_ms: int = 0
    error_msg: str | None = None
    id: str | None = None
    created_at: datetime | None = None
