"""Data ingestion module - source drivers, the fetch pipeline, and result types."""

from buzzing.ingestion.base_driver import SourceDriver, SourceFetchError
from buzzing.ingestion.schemas import (
    AggregateResult,
    FetchResult,
    FetchTask,
    SourceRunResult,
)

__all__ = [
    "SourceDriver",
    "SourceFetchError",
    "AggregateResult",
    "FetchResult",
    "FetchTask",
    "SourceRunResult",
]
