"""
Result types for fetch runs.

FetchResult describes one driver run; SourceRunResult is the
orchestrator's isolated view of it (success flag plus captured error);
AggregateResult summarizes a fan-out over many sources.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field


@dataclass
class FetchResult:
    """Outcome of one source fetch run."""

    source: str
    count: int = 0  # candidates that survived filtering
    new_posts: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0  # raw items that failed normalization
    duration_ms: int = 0
    skipped_inactive: bool = False


@dataclass
class SourceRunResult:
    """Per-source entry in an aggregate run."""

    source: str
    success: bool
    new_posts: int = 0
    duration_ms: int = 0
    error: str | None = None
    result: FetchResult | None = None

    @classmethod
    def from_fetch_result(cls, result: FetchResult) -> "SourceRunResult":
        return cls(
            source=result.source,
            success=True,
            new_posts=result.new_posts,
            duration_ms=result.duration_ms,
            result=result,
        )


@dataclass
class AggregateResult:
    """Summary of running many sources concurrently."""

    results: list[SourceRunResult] = field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_new_posts(self) -> int:
        return sum(r.new_posts for r in self.results)

    @property
    def all_succeeded(self) -> bool:
        return self.fail_count == 0

    @property
    def any_succeeded(self) -> bool:
        return self.success_count > 0

    @property
    def summary(self) -> str:
        return f"{self.success_count}/{len(self.results)} sources succeeded"

    def failures(self) -> list[SourceRunResult]:
        return [r for r in self.results if not r.success]


@dataclass
class FetchTask:
    """A named, zero-argument fetch entry point for the orchestrator."""

    name: str
    run: Callable[[], Awaitable[FetchResult]]
