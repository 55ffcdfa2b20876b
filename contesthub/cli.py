"""
Command-line interface for contesthub.

Provides commands to serve the API, run one aggregation cycle, run the
background monitor, and manage history snapshots.

Usage:
    contesthub serve      # Run the HTTP API
    contesthub fetch      # Aggregate once and print contests
    contesthub monitor    # Run webhook checks and snapshots in a loop
    contesthub snapshot   # Save one history snapshot
    contesthub cleanup    # Delete old history snapshots
    contesthub sources    # List sources and their configuration
    contesthub health     # Probe every source once
"""

import asyncio
import json
import os
import signal
import sys

import click

from contesthub.config.settings import get_settings
from contesthub.ingestion.schemas import Source
from contesthub.observability.logging import bind_context, get_logger, setup_logging
from contesthub.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """ContestHub - programming contest aggregation."""
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--mock", is_flag=True, help="Serve data from mock adapters")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(
    host: str | None,
    port: int | None,
    reload: bool,
    mock: bool,
    metrics_port: int | None,
) -> None:
    """Start the contests API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    if mock:
        from contesthub.api.app import create_app

        uvicorn.run(create_app(use_mock=True), host=host, port=port, log_level="info")
        return

    uvicorn.run(
        "contesthub.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command()
@click.option(
    "--source",
    "sources",
    multiple=True,
    help="Source to query on fallback (repeatable, default all)",
)
@click.option("--mock", is_flag=True, help="Use mock adapters")
@click.option("--json", "as_json", is_flag=True, help="Print contests as JSON")
def fetch(sources: tuple[str, ...], mock: bool, as_json: bool) -> None:
    """Run one aggregation cycle and print the result."""
    from contesthub.query.filters import sort_contests
    from contesthub.services.aggregation_service import ALL_SOURCES, create_aggregator

    bind_context(command="fetch")

    async def run():
        aggregator = create_aggregator(use_mock=mock)
        contests = await aggregator.aggregate(list(sources) or [ALL_SOURCES])
        return sort_contests(contests), aggregator.last_report

    contests, report = asyncio.run(run())

    if as_json:
        click.echo(json.dumps([c.to_dict() for c in contests], indent=2))
        return

    click.echo(f"\nAggregation stage: {report.stage}")
    for source, result in report.results.items():
        color = "green" if result.ok else "red"
        detail = result.error or f"{len(result.records)} records"
        click.echo(click.style(f"  {source.value}: {detail}", fg=color))

    click.echo(f"\n{len(contests)} contests:")
    for contest in contests:
        start = contest.start_time.strftime("%Y-%m-%d %H:%M UTC")
        click.echo(
            f"  [{contest.status.value:8}] {start}  {contest.platform:12} {contest.name}"
        )


@main.command()
@click.option("--mock", is_flag=True, help="Use mock adapters")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def monitor(mock: bool, metrics: bool) -> None:
    """Run the webhook checker and history snapshotter until stopped."""
    from contesthub.api.dependencies import build_services

    bind_context(command="monitor")

    async def run():
        services = build_services(use_mock=mock)

        if metrics:
            get_metrics().start_server()

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig, lambda: asyncio.create_task(services.monitor.stop())
            )

        task = services.monitor.start_background()
        try:
            await asyncio.gather(task, return_exceptions=True)
        finally:
            await services.close()

    asyncio.run(run())


@main.command()
@click.option("--mock", is_flag=True, help="Use mock adapters")
def snapshot(mock: bool) -> None:
    """Aggregate once and save a history snapshot."""
    from contesthub.history.store import SnapshotStore
    from contesthub.services.aggregation_service import create_aggregator
    from contesthub.services.contest_service import ContestService

    async def run():
        service = ContestService(create_aggregator(use_mock=mock))
        try:
            contests = await service.get_contests()
        finally:
            await service.close()
        return await SnapshotStore().save_snapshot(contests)

    meta = asyncio.run(run())
    click.echo(f"Saved {meta['id']} with {meta['contestCount']} contests")


@main.command()
@click.option("--days", default=None, type=int, help="Days of history to keep")
def cleanup(days: int | None) -> None:
    """Delete history snapshots older than the retention window."""
    from contesthub.history.store import SnapshotStore

    settings = get_settings()
    days = days if days is not None else settings.history_retention_days
    removed = asyncio.run(SnapshotStore().cleanup(days))
    click.echo(f"Removed {removed} snapshots older than {days} days")


@main.command()
def sources() -> None:
    """List sources and whether they are enabled."""
    settings = get_settings()
    enabled = settings.enabled_source_names

    click.echo("\nSources:")
    click.echo("-" * 40)
    for source in Source:
        if source is Source.CLIST:
            active = settings.clist_configured
            note = "primary, configured" if active else "primary, missing credentials"
        else:
            active = "all" in enabled or source.value in enabled
            note = "enabled" if active else "disabled"
        icon = "✓" if active else "✗"
        color = "green" if active else "yellow"
        click.echo(click.style(f"  {icon} {source.value}: {note}", fg=color))
    click.echo("-" * 40)


@main.command()
@click.option("--mock", is_flag=True, help="Use mock adapters")
def health(mock: bool) -> None:
    """Probe every source once."""
    from contesthub.services.aggregation_service import create_aggregator

    logger = get_logger(__name__)
    settings = get_settings()

    async def check():
        aggregator = create_aggregator(use_mock=mock)
        return await aggregator.probe_sources(include_primary=settings.clist_configured)

    results = asyncio.run(check())

    click.echo("\nHealth Check Results:")
    click.echo("-" * 40)
    for result in results:
        icon = "✓" if result.ok else "✗"
        color = "green" if result.ok else "red"
        detail = result.error or f"{len(result.records)} records"
        click.echo(click.style(f"  {icon} {result.source.value}: {detail}", fg=color))
    click.echo("-" * 40)

    failed = [r.source.value for r in results if not r.ok]
    if not failed:
        click.echo(click.style("All sources healthy!", fg="green"))
        sys.exit(0)

    logger.warning("Sources unhealthy", sources=failed)
    click.echo(click.style("Some sources unhealthy!", fg="red"))
    sys.exit(1)


if __name__ == "__main__":
    main()
