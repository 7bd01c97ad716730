"""
Ingestion service - runs source fetches concurrently and aggregates results.

Each source run is isolated: an error raised by one source, whether while
building its coroutine or while awaiting it, is captured as a failed
SourceRunResult and never cancels or delays the others. Scheduling and
retries are left to the caller (cron, CLI).
"""

import asyncio
import time

import structlog

from buzzing.ingestion.pipeline import IngestionPipeline
from buzzing.ingestion.registry import DriverFactory, driver_factories
from buzzing.ingestion.schemas import (
    AggregateResult,
    FetchResult,
    FetchTask,
    SourceRunResult,
)

logger = structlog.get_logger(__name__)


class UnknownSourceError(KeyError):
    """No driver is registered under the requested name."""

    def __init__(self, name: str, known: list[str]):
        super().__init__(name)
        self.name = name
        self.known = known

    def __str__(self) -> str:
        return f"Unknown source {self.name!r}; expected one of: {', '.join(self.known)}"


class IngestionService:
    """
    Orchestrates fetch runs across sources.

    Usage:
        service = IngestionService(pipeline)
        aggregate = await service.fetch_all()
        print(aggregate.summary)  # "10/11 sources succeeded"
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        drivers: dict[str, DriverFactory] | None = None,
    ):
        """
        Initialize ingestion service.

        Args:
            pipeline: Pipeline that executes a single driver run
            drivers: Source name -> driver factory (or the configured registry)
        """
        self._pipeline = pipeline
        self._drivers = drivers if drivers is not None else driver_factories()

        logger.info("Ingestion service initialized", sources=list(self._drivers))

    @property
    def source_names(self) -> list[str]:
        return list(self._drivers)

    async def fetch_source(self, name: str, translate: bool = True) -> FetchResult:
        """
        Run one source.

        Raises:
            UnknownSourceError: If no driver is registered under ``name``.
            Exception: Whatever the run raised (already recorded in the fetch log).
        """
        factory = self._drivers.get(name)
        if factory is None:
            raise UnknownSourceError(name, self.source_names)
        return await self._pipeline.run(factory(), translate=translate)

    async def fetch_all(self, translate: bool = True) -> AggregateResult:
        """Run every registered source concurrently."""
        tasks = [
            FetchTask(name=name, run=self._runner(name, translate))
            for name in self._drivers
        ]
        return await self.run_all(tasks)

    def _runner(self, name: str, translate: bool):
        return lambda: self.fetch_source(name, translate=translate)

    async def run_all(self, tasks: list[FetchTask]) -> AggregateResult:
        """
        Run tasks concurrently and aggregate their outcomes.

        Never raises for task failures; total duration is bounded by the
        slowest task.
        """
        start = time.monotonic()
        results = await asyncio.gather(*(self._run_isolated(task) for task in tasks))

        aggregate = AggregateResult(
            results=list(results),
            total_duration_ms=int((time.monotonic() - start) * 1000),
        )

        log = logger.info if aggregate.all_succeeded else logger.warning
        log(
            "Fetch-all completed",
            summary=aggregate.summary,
            total_new_posts=aggregate.total_new_posts,
            failed=[r.source for r in aggregate.failures()],
            duration_ms=aggregate.total_duration_ms,
        )
        return aggregate

    async def _run_isolated(self, task: FetchTask) -> SourceRunResult:
        start = time.monotonic()
        try:
            # task.run() itself may raise before returning an awaitable
            result = await task.run()
        except Exception as e:
            logger.error("Source run failed", source=task.name, error=str(e))
            return SourceRunResult(
                source=task.name,
                success=False,
                duration_ms=int((time.monotonic() - start) * 1000),
                error=str(e) or type(e).__name__,
            )

        run_result = SourceRunResult.from_fetch_result(result)
        run_result.source = task.name
        return run_result
