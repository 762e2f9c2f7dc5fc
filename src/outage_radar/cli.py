"""outage-radar CLI entry point."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from outage_radar.config.models import RadarConfig
from outage_radar.events.emitter import CRITICAL, REFRESHED, StatusEvent

app = typer.Typer(
    name="outage-radar",
    help="Outage Radar: third-party service outage aggregator",
    no_args_is_help=True,
)
console = Console()

SEVERITY_STYLES = {
    "stable": "green",
    "degraded": "yellow",
    "down": "red",
    "unknown": "magenta",
    "error": "magenta",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _load(path: Path | None = None) -> RadarConfig:
    """Load the config file, falling back to defaults plus environment."""
    from outage_radar.config.loader import config_from_env, load_config

    try:
        return load_config(path=path)
    except FileNotFoundError:
        if path is not None:
            console.print(f"[red]Config file not found: {path}[/red]")
            raise typer.Exit(1)
        return config_from_env()
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)


def _styled(severity: str) -> str:
    style = SEVERITY_STYLES.get(severity, "white")
    return f"[{style}]{severity}[/{style}]"


@app.command()
def status(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .outage-radar.yaml"),
) -> None:
    """Check every tracked service once and print the aggregate."""
    from outage_radar.monitor.orchestrator import StatusOrchestrator

    config = _load(path)
    orchestrator = StatusOrchestrator.from_config(config)
    report = asyncio.run(orchestrator.get_aggregate())

    table = Table(title="Service Status")
    table.add_column("Service", style="bold")
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Reports")
    table.add_column("Message")

    for s in report.details:
        descriptor = orchestrator.registry.get(s.service_id)
        name = descriptor.display_name if descriptor else s.service_id
        reports = f"{s.report_volume:.0f}" if s.report_volume is not None else "—"
        table.add_row(name, _styled(s.severity.value), s.source.value, reports, escape(s.message))

    console.print(table)
    console.print(f"\n[bold]{report.summary}[/bold]")


@app.command()
def check(
    service: str = typer.Argument(help="Service id, name or keyword"),
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .outage-radar.yaml"),
) -> None:
    """Resolve the status of a single service."""
    from outage_radar.monitor.orchestrator import StatusOrchestrator

    config = _load(path)
    orchestrator = StatusOrchestrator.from_config(config)
    descriptor = orchestrator.registry.resolve(service)
    if descriptor is None:
        console.print(f"[red]Unknown service: {escape(service)}[/red]")
        console.print(f"Available: {', '.join(orchestrator.registry.service_ids) or 'none'}")
        raise typer.Exit(1)

    result = asyncio.run(orchestrator.get_status(descriptor.id))
    console.print(f"[bold]{descriptor.display_name}[/bold]: {_styled(result.severity.value)} (via {result.source.value})")
    console.print(f"  {escape(result.message)}")
    if result.report_volume is not None:
        console.print(f"  Reports: {result.report_volume:.0f}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    """Start the API server with background refresh."""
    import uvicorn

    console.print(f"[bold]Outage Radar[/bold] starting on http://{host}:{port}")
    uvicorn.run("outage_radar.api.app:app", host=host, port=port, reload=False)


class _ConsoleListener:
    """Prints a line per refresh and alert while watching."""

    async def on_event(self, event: StatusEvent) -> None:
        stamp = event.timestamp.strftime("%H:%M:%S")
        if event.event_type == REFRESHED:
            console.print(
                f"[dim]{stamp}[/dim] checked {event.data['total_checked']}, "
                f"{event.data['problems']} with issues, {event.data['unknown_or_error']} unknown"
            )
        elif event.event_type == CRITICAL:
            console.print(f"[red bold]{stamp} CRITICAL: {event.data['down']} service(s) down[/red bold]")


async def _watch(config: RadarConfig, interval: float) -> None:
    from outage_radar.events.emitter import create_cli_emitter
    from outage_radar.monitor.orchestrator import StatusOrchestrator
    from outage_radar.monitor.scheduler import StatusScheduler

    emitter = create_cli_emitter(config)
    emitter.add_listener(_ConsoleListener())

    scheduler = StatusScheduler(
        StatusOrchestrator.from_config(config),
        emitter=emitter,
        critical_threshold=config.alerts.critical_threshold,
        run_on_start=True,
    )
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows: KeyboardInterrupt unwinds through the finally below

    scheduler.start(interval)
    try:
        await stop.wait()
    finally:
        scheduler.stop()
        await scheduler.drain()
        await emitter.drain()


@app.command()
def watch(
    interval: float | None = typer.Option(None, "--interval", "-i", help="Seconds between refreshes"),
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .outage-radar.yaml"),
) -> None:
    """Refresh statuses on a schedule until interrupted."""
    config = _load(path)
    every = interval or config.scheduler.interval
    console.print(f"[bold]Watching[/bold] {len(config.services)} services every {every:.0f}s (Ctrl+C to stop)")
    try:
        asyncio.run(_watch(config, every))
    except KeyboardInterrupt:
        pass
    console.print("Stopped.")


config_app = typer.Typer(name="config", help="Configuration commands")
app.add_typer(config_app)


@config_app.command("validate")
def config_validate(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .outage-radar.yaml"),
) -> None:
    """Validate configuration file."""
    from urllib.parse import urlparse

    import yaml

    from outage_radar.config.loader import load_config
    from outage_radar.events.emitter import EVENT_TYPES

    errors: list[str] = []
    warnings: list[str] = []
    try:
        config = load_config(path=path)
        console.print("[green]✓[/green] YAML parses correctly")
        console.print("[green]✓[/green] Pydantic validation passes")
    except FileNotFoundError as exc:
        console.print(f"[red]✗ {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except yaml.YAMLError as exc:
        console.print(f"[red]✗ YAML parsing failed: {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except ValueError as exc:
        console.print("[green]✓[/green] YAML parses correctly")
        console.print(f"[red]✗ Pydantic validation failed: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    for label, url in (("Aggregator", config.scraper.base_url), ("Model", config.llm.base_url)):
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            errors.append(f"{label} URL is invalid: '{url}'")
    if "{slug}" not in config.scraper.detail_path:
        errors.append(f"scraper.detail_path must contain '{{slug}}': '{config.scraper.detail_path}'")
    if not config.services:
        errors.append("No services configured")
    if not config.llm.api_key:
        warnings.append("llm.api_key is empty; the generative-model tier is disabled")

    for i, wh in enumerate(config.webhooks):
        if not wh.url:
            warnings.append(f"Webhook {i}: no URL set; it will be skipped")
            continue
        parsed = urlparse(wh.url)
        if not parsed.scheme or not parsed.netloc:
            errors.append(f"Webhook {i}: invalid URL '{wh.url}'")
        for evt in wh.events:
            if evt not in EVENT_TYPES and evt != "*":
                warnings.append(f"Webhook {i}: unrecognized event type '{evt}'")

    if not errors:
        console.print(f"[green]✓[/green] {len(config.services)} service(s) in catalogue")
        if config.webhooks:
            console.print(f"[green]✓[/green] {len(config.webhooks)} webhook(s) configured")
        for w in warnings:
            console.print(f"[yellow]! {w}[/yellow]")
        console.print("\n[green bold]Configuration is valid.[/green bold]")
    else:
        for err in errors:
            console.print(f"[red]✗ {err}[/red]")
        console.print(f"\n[red bold]{len(errors)} validation error(s) found.[/red bold]")
        raise typer.Exit(1)


@config_app.command("show")
def config_show(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .outage-radar.yaml"),
) -> None:
    """Print resolved configuration."""
    config = _load(path)

    console.print(f"[bold]{config.radar.name}[/bold] v{config.radar.version}\n")

    console.print("[bold]Sources:[/bold]")
    console.print(f"  Aggregator: {config.scraper.base_url} (timeout {config.scraper.timeout}s, cache {config.scraper.cache_ttl:.0f}s)")
    model_state = "enabled" if config.llm.api_key else "disabled (no API key)"
    console.print(f"  Model: {config.llm.model} {model_state}")
    console.print(f"  Detail pages: {config.scraper.detail_path}\n")

    console.print("[bold]Refresh:[/bold]")
    console.print(f"  Every {config.scheduler.interval:.0f}s, status TTL {config.cache.status_ttl:.0f}s")
    console.print(f"  Alert when more than {config.alerts.critical_threshold} service(s) are down\n")

    console.print("[bold]Services:[/bold]")
    for key, entry in config.services.items():
        slug = entry.slug or key
        console.print(f"  {key}: {entry.name} ({slug})")
        if entry.keywords:
            console.print(f"    Keywords: {', '.join(entry.keywords)}")


def main() -> None:
    app()
