#!/usr/bin/env python3
"""
FeedSentry - Feed Ingestion and Deduplication
=============================================

Command line interface for managing sources and running the collector.

Usage:
    python main.py --help                 # Show all commands
    python main.py check-config           # Validate configuration
    python main.py init-db                # Initialize database
    python main.py seed-sources           # Register the default source catalogue
    python main.py list-sources           # Show registered sources
    python main.py test-feeds             # Fetch and parse every enabled source
    python main.py collect-once           # Run a single collection round
    python main.py run                    # Run the collector until interrupted
"""

import sys
import asyncio
import signal
from pathlib import Path
from urllib.parse import urlparse

import click
from rich.console import Console
from rich.table import Table

from feedsentry.config.settings import get_settings
from feedsentry.database.connection import DatabaseConnection
from feedsentry.database.models import FeedSource
from feedsentry.database.schema import DatabaseSchema
from feedsentry.ingestion.feed_fetcher import SourceFetcher
from feedsentry.ingestion.feed_parser import FeedParser
from feedsentry.scheduler.service import CollectionService
from feedsentry.storage.source_repository import SourceRepository
from feedsentry.utils.exceptions import EmptyFeedError, FeedSentryError, SourceUnavailableError
from feedsentry.utils.logging import configure_application_logging
from feedsentry.utils.validators import URLValidator

console = Console()


def _load(ctx):
    """Load settings and configure logging once per invocation."""
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get("debug") else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )
    return settings


def _site_root(feed_url: str) -> str:
    parsed = urlparse(feed_url)
    return f"{parsed.scheme}://{parsed.netloc}"


def _source_repository(settings) -> SourceRepository:
    DatabaseSchema(settings.database.path).create_tables()
    return SourceRepository(DatabaseConnection(settings.database.path, pool_size=1))


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, debug):
    """FeedSentry - feed ingestion and deduplication pipeline."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking FeedSentry Configuration[/bold blue]")

    try:
        settings = get_settings()
    except FeedSentryError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration")
    table.add_column("Section", style="cyan")
    table.add_column("Details")

    table.add_row(
        "Collection",
        f"every {settings.collection.interval_seconds}s, "
        f"{settings.collection.max_concurrent_sources} concurrent, "
        f"round timeout {settings.collection.round_timeout_seconds}s, "
        f"restart after {settings.collection.max_consecutive_errors} failed rounds",
    )
    table.add_row(
        "Fetch",
        f"timeout {settings.fetch.timeout_seconds}s, {settings.fetch.max_attempts} attempts, "
        f"backoff {settings.fetch.base_delay_seconds}s x attempt",
    )
    table.add_row(
        "Deduplication",
        f"similarity >= {settings.deduplication.similarity_threshold}, "
        f"window {settings.deduplication.recent_window_hours}h / "
        f"{settings.deduplication.recent_window_size} items",
    )
    table.add_row(
        "Categorization",
        f"{len(settings.categorization.rules)} rules, "
        f"{settings.categorization.min_keyword_matches} keyword matches, "
        f"default '{settings.categorization.default_category}'",
    )
    table.add_row(
        "Health",
        f"check every {settings.health.check_interval_seconds}s, "
        f"stale after {settings.health.stale_threshold_seconds}s",
    )
    table.add_row("Database", settings.database.path)
    table.add_row("Logging", f"{settings.logging.level.value} -> {settings.logging.file_path or 'console'}")

    console.print(table)
    console.print("[bold green]✅ All configuration checks passed![/bold green]")


@cli.command()
@click.pass_context
def init_db(ctx):
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing FeedSentry Database[/bold blue]")

    try:
        settings = _load(ctx)
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        info = DatabaseConnection(settings.database.path, pool_size=1).get_database_info()

        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")
        info_table.add_row("Database Path", str(Path(settings.database.path)))
        info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
        for table_name, count in info["table_counts"].items():
            info_table.add_row(f"Rows in {table_name}", str(count))

        console.print(info_table)
        console.print("[bold green]✅ Database initialized successfully![/bold green]")

    except FeedSentryError as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def seed_sources(ctx):
    """Register the default source catalogue."""
    settings = _load(ctx)
    service = CollectionService(settings)
    try:
        added = service.seed_default_sources()
    finally:
        service.close()
    console.print(f"[bold green]✅ Added {added} default source(s)[/bold green]")


@cli.command()
@click.argument('source_id')
@click.argument('name')
@click.argument('feed_url')
@click.option('--url', help='Publisher base URL (defaults to the feed host)')
@click.option('--disabled', is_flag=True, help='Register without collecting it')
@click.pass_context
def add_source(ctx, source_id, name, feed_url, url, disabled):
    """Register or update a feed source."""
    settings = _load(ctx)

    try:
        feed_url = URLValidator.validate_feed_url(feed_url)
        source = FeedSource(
            id=source_id,
            name=name,
            url=url or _site_root(feed_url),
            feed_url=feed_url,
            enabled=not disabled,
        )
        _source_repository(settings).add_source(source)
    except FeedSentryError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]✅ Saved source {source.id}[/bold green]")


@cli.command()
@click.pass_context
def list_sources(ctx):
    """Show registered sources."""
    settings = _load(ctx)
    sources = _source_repository(settings).list_sources()

    table = Table(title=f"Sources ({len(sources)})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Feed URL")
    table.add_column("Enabled")
    table.add_column("Last crawled")

    for source in sources:
        table.add_row(
            source.id,
            source.name,
            source.feed_url or "-",
            "✅" if source.enabled else "⏸️",
            source.last_crawled_at.strftime("%Y-%m-%d %H:%M") if source.last_crawled_at else "never",
        )

    console.print(table)


@cli.command()
@click.pass_context
def test_feeds(ctx):
    """Fetch and parse every enabled source without storing anything."""
    settings = _load(ctx)
    sources = [s for s in _source_repository(settings).list_enabled_sources() if s.feed_url]

    if not sources:
        console.print("[yellow]No enabled sources with a feed URL[/yellow]")
        return

    parser = FeedParser(settings.parsing)

    async def probe():
        rows = []
        async with SourceFetcher(settings.fetch) as fetcher:
            for source in sources:
                try:
                    raw = await fetcher.fetch(source.feed_url)
                    result = parser.parse(raw, source_name=source.name, feed_url=source.feed_url)
                    rows.append((source, "✅", f"{result.item_count} {result.dialect}s, {result.skipped} skipped"))
                except EmptyFeedError as e:
                    rows.append((source, "⚠️", str(e)))
                except SourceUnavailableError as e:
                    rows.append((source, "❌", str(e)))
        return rows

    table = Table(title="Feed Connectivity")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Details")
    for source, status, details in asyncio.run(probe()):
        table.add_row(source.name, status, details)
    console.print(table)


@cli.command()
@click.option('--seed', is_flag=True, help='Seed default sources before collecting')
@click.pass_context
def collect_once(ctx, seed):
    """Run a single collection round and print its result."""
    settings = _load(ctx)
    service = CollectionService(settings)

    async def run_round():
        if seed:
            service.seed_default_sources()
        return await service.collect_once()

    try:
        result = asyncio.run(run_round())
    finally:
        service.close()

    table = Table(title="Collection Round")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Success", "✅" if result.success else "❌")
    table.add_row("Sources", str(result.sources_total))
    table.add_row("Accepted", str(result.accepted_count))
    table.add_row("Duplicates", str(result.duplicate_count))
    table.add_row("Failed sources", ", ".join(result.failed_source_ids) or "-")
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    console.print(table)

    if not result.success:
        sys.exit(1)


@cli.command()
@click.option('--seed', is_flag=True, help='Seed default sources before starting')
@click.pass_context
def run(ctx, seed):
    """Run the collector and health monitor until interrupted."""
    settings = _load(ctx)
    console.print("[bold blue]🚀 Starting FeedSentry collector[/bold blue]")

    async def run_service():
        service = CollectionService(settings)
        if seed:
            service.seed_default_sources()

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Windows event loops have no signal handler support
                pass

        await service.start()
        try:
            await stop_event.wait()
        finally:
            await service.stop()
            service.close()

        health = service.get_health()
        console.print(
            f"[yellow]Stopped after {health.restart_count} restart(s); "
            f"last success {health.last_successful_round_at:%Y-%m-%d %H:%M:%S} UTC[/yellow]"
        )

    asyncio.run(run_service())


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 FeedSentry interrupted by user[/yellow]")
        sys.exit(130)
    except FeedSentryError as e:
        console.print(f"\n[bold red]❌ {e}[/bold red]")
        sys.exit(1)
