"""
Command-line interface for buzzing.

Trigger boundary for the ingestion core: one-shot fetch runs, the
deferred translation sweep, and database/diagnostic commands. Scheduling
(cron, systemd timers) invokes these commands.

Usage:
    buzzing fetch hn              # Run one source
    buzzing fetch-all             # Run every source concurrently
    buzzing fetch-all --serve-metrics  # Also expose /metrics during the run
    buzzing translate-pending     # Catch up on untranslated posts
    buzzing init-db               # Create tables
    buzzing sources               # List sources
    buzzing logs --source hn      # Recent fetch runs
    buzzing health                # Check dependencies
"""

import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import click

from buzzing.config.settings import Settings, get_settings
from buzzing.fetch_logs.repository import FetchLogRepository
from buzzing.ingestion.pipeline import IngestionPipeline
from buzzing.ingestion.registry import SOURCE_NAMES, driver_factories
from buzzing.observability.logging import setup_logging
from buzzing.observability.metrics import get_metrics
from buzzing.posts.repository import PostRepository
from buzzing.services.ingestion_service import IngestionService
from buzzing.sources.repository import SourcesRepository
from buzzing.storage.database import Database
from buzzing.translation.service import TranslationService


@dataclass
class Runtime:
    """Components wired for one CLI invocation."""

    database: Database
    sources: SourcesRepository
    posts: PostRepository
    fetch_logs: FetchLogRepository
    translator: TranslationService | None
    pipeline: IngestionPipeline
    service: IngestionService


def _build_translator(settings: Settings, database: Database) -> TranslationService | None:
    """Translation engine, or None when provider credentials are missing."""
    import structlog

    from buzzing.translation.cache import TranslationCacheRepository
    from buzzing.translation.config import TranslationConfig
    from buzzing.translation.provider import TencentTranslationProvider

    if not settings.translation_configured:
        structlog.get_logger().warning(
            "Translation provider not configured, posts will stay pending"
        )
        return None

    config = TranslationConfig()
    provider = TencentTranslationProvider.from_settings(settings, config)
    return TranslationService(provider, TranslationCacheRepository(database), config)


@asynccontextmanager
async def _runtime(translate: bool = True) -> AsyncIterator[Runtime]:
    settings = get_settings()
    db = Database()
    await db.connect()

    try:
        sources = SourcesRepository(db)
        posts = PostRepository(db)
        fetch_logs = FetchLogRepository(db)
        translator = _build_translator(settings, db) if translate else None
        pipeline = IngestionPipeline(
            sources, posts, fetch_logs, translator=translator, settings=settings
        )
        service = IngestionService(pipeline, driver_factories(settings))

        yield Runtime(
            database=db,
            sources=sources,
            posts=posts,
            fetch_logs=fetch_logs,
            translator=translator,
            pipeline=pipeline,
            service=service,
        )
    finally:
        await db.close()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Buzzing - trending content ingestion and translation."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()

    # Initialize tracing if enabled
    settings = get_settings()
    if settings.tracing_enabled:
        from buzzing.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )


@main.command()
@click.argument("source", type=click.Choice(SOURCE_NAMES))
@click.option("--no-translate", is_flag=True, help="Store posts untranslated (sweep later)")
def fetch(source: str, no_translate: bool) -> None:
    """Run one source fetch."""

    async def run() -> int:
        async with _runtime(translate=not no_translate) as rt:
            try:
                result = await rt.service.fetch_source(source, translate=not no_translate)
            except Exception as e:
                click.echo(click.style(f"✗ {source}: {e}", fg="red"), err=True)
                return 1

        if result.skipped_inactive:
            click.echo(click.style(f"- {source}: inactive, skipped", fg="yellow"))
            return 0

        click.echo(
            click.style(
                f"✓ {source}: {result.count} items, {result.new_posts} new, "
                f"{result.updated} updated, {result.deleted} evicted "
                f"({result.duration_ms}ms)",
                fg="green",
            )
        )
        return 0

    sys.exit(asyncio.run(run()))


@main.command("fetch-all")
@click.option("--no-translate", is_flag=True, help="Store posts untranslated (sweep later)")
@click.option(
    "--require-all/--allow-partial",
    default=True,
    help="Fail unless every source succeeds (default), or unless at least one does",
)
@click.option("--serve-metrics", is_flag=True, help="Expose Prometheus metrics on METRICS_PORT")
def fetch_all(no_translate: bool, require_all: bool, serve_metrics: bool) -> None:
    """Run every source concurrently."""
    if serve_metrics:
        get_metrics().start_server()

    async def run() -> int:
        async with _runtime(translate=not no_translate) as rt:
            aggregate = await rt.service.fetch_all(translate=not no_translate)

        click.echo("\nFetch Results:")
        click.echo("-" * 40)
        for r in aggregate.results:
            if r.success:
                click.echo(
                    click.style(
                        f"  ✓ {r.source}: {r.new_posts} new ({r.duration_ms}ms)", fg="green"
                    )
                )
            else:
                click.echo(click.style(f"  ✗ {r.source}: {r.error}", fg="red"))
        click.echo("-" * 40)
        click.echo(
            f"{aggregate.summary}, {aggregate.total_new_posts} new posts "
            f"in {aggregate.total_duration_ms}ms"
        )

        ok = aggregate.all_succeeded if require_all else aggregate.any_succeeded
        return 0 if ok else 1

    sys.exit(asyncio.run(run()))


@main.command("translate-pending")
@click.option("--limit", default=50, type=click.IntRange(min=1), help="Posts per sweep")
@click.option("--serve-metrics", is_flag=True, help="Expose Prometheus metrics on METRICS_PORT")
def translate_pending(limit: int, serve_metrics: bool) -> None:
    """Translate posts stored without a complete translation."""
    from buzzing.services.translation_sweep import TranslationSweep

    if serve_metrics:
        get_metrics().start_server()

    async def run() -> int:
        async with _runtime() as rt:
            if rt.translator is None:
                click.echo(
                    click.style(
                        "Translation provider not configured "
                        "(TENCENT_SECRET_ID, TENCENT_SECRET_KEY)",
                        fg="red",
                    ),
                    err=True,
                )
                return 1

            sweep = TranslationSweep(rt.posts, rt.translator)
            result = await sweep.translate_pending_posts(limit)

        click.echo(
            f"Translated {result.translated}/{result.pending} posts "
            f"(degraded={result.degraded}, failed={result.failed}, "
            f"{result.duration_ms}ms)"
        )
        return 0 if result.failed == 0 else 1

    sys.exit(asyncio.run(run()))


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from buzzing.translation.cache import TranslationCacheRepository

    async def run():
        async with _runtime(translate=False) as rt:
            # posts references sources
            await rt.sources.create_table()
            await rt.posts.create_tables()
            await TranslationCacheRepository(rt.database).create_table()
            await rt.fetch_logs.create_table()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command("sources")
def list_sources() -> None:
    """List registered drivers and their stored source rows."""

    async def run():
        async with _runtime(translate=False) as rt:
            stored = {s.name: s for s in await rt.sources.list_sources()}
            counts = {
                s.name: await rt.posts.count_by_source(s.id) for s in stored.values()
            }

        click.echo(f"{'name':<12} {'active':<7} {'posts':>6} {'cap':>5}  display name")
        click.echo("-" * 56)
        for name in SOURCE_NAMES:
            source = stored.get(name)
            if source is None:
                click.echo(f"{name:<12} {'-':<7} {'-':>6} {'-':>5}  (not fetched yet)")
                continue
            active = "yes" if source.is_active else "no"
            click.echo(
                f"{name:<12} {active:<7} {counts[name]:>6} {source.max_posts:>5}  "
                f"{source.display_name}"
            )

    asyncio.run(run())


@main.command("set-active")
@click.argument("name", type=click.Choice(SOURCE_NAMES))
@click.option("--on/--off", "active", default=True, help="Enable or disable the source")
def set_active(name: str, active: bool) -> None:
    """Enable or disable a source. Inactive sources are skipped by fetch runs."""

    async def run() -> int:
        async with _runtime(translate=False) as rt:
            changed = await rt.sources.set_active(name, active)
            exists = changed or await rt.sources.get_by_name(name) is not None

        state = "active" if active else "inactive"
        if not exists:
            click.echo(click.style(f"Source {name} has not been fetched yet", fg="red"))
            return 1
        if changed:
            click.echo(f"Source {name} is now {state}")
        else:
            click.echo(f"Source {name} already {state}")
        return 0

    sys.exit(asyncio.run(run()))


@main.command()
@click.option("--source", "source_name", default=None, type=click.Choice(SOURCE_NAMES))
@click.option("--limit", default=20, type=click.IntRange(min=1), help="Rows to show")
def logs(source_name: str | None, limit: int) -> None:
    """Show recent fetch runs."""

    async def run():
        async with _runtime(translate=False) as rt:
            rows = await rt.fetch_logs.recent(source_name=source_name, limit=limit)

        if not rows:
            click.echo("No fetch runs recorded")
            return

        for row in rows:
            when = row.created_at.strftime("%Y-%m-%d %H:%M:%S") if row.created_at else "-"
            color = "green" if row.status.value == "success" else "red"
            line = (
                f"{when}  {row.source_name:<12} {row.status.value:<8} "
                f"{row.items_count:>4} new  {row.duration_ms:>6}ms"
            )
            if row.error_msg:
                line += f"  {row.error_msg}"
            click.echo(click.style(line, fg=color))

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}
        settings = get_settings()

        # Check PostgreSQL
        try:
            async with _runtime(translate=False) as rt:
                results["postgres"] = await rt.database.health_check()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        results["translation_configured"] = settings.translation_configured
        results["producthunt_api_configured"] = settings.producthunt_api_key is not None

        # Print results
        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if name == "postgres" and not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
