"""Monitor host commands for pricealert CLI.

Runs the alert monitor in the foreground until interrupted, or for a
single cycle with --once.
"""

import asyncio
import signal
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pricealert.cli.main import load_cli_config
from pricealert.config import Config
from pricealert.monitor import CycleReport

console = Console()


def render_cycle_report(report: CycleReport) -> Table:
    """Render a cycle report as a rich table."""
    table = Table(
        title=f"Cycle {report.cycle}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    failed = ", ".join(report.failed_symbols) or "-"
    table.add_row("Duration", f"{report.duration_seconds:.2f}s")
    table.add_row("Active alerts", str(report.alerts_loaded))
    table.add_row("Symbols", str(len(report.symbols)))
    table.add_row("Failed symbols", failed)
    table.add_row("Evaluations", str(report.evaluations))
    table.add_row("Triggers", str(len(report.triggers)))
    table.add_row("Persistence failures", str(len(report.persistence_failures)))
    table.add_row("Notifications dropped", str(report.notifications_dropped))
    return table


async def _run_once(config: Config) -> CycleReport:
    from pricealert.factory import build_monitor

    monitor = build_monitor(config)
    try:
        return await monitor.run_cycle()
    finally:
        await monitor.aclose()


async def _run_forever(config: Config) -> None:
    from pricealert.factory import build_monitor

    monitor = build_monitor(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    try:
        await monitor.start()
        await stop_event.wait()
    finally:
        await monitor.aclose()


@click.command("monitor")
@click.option("--once", is_flag=True, help="Run a single cycle and exit.")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Override the polling interval in seconds.",
)
@click.pass_context
def monitor(ctx: click.Context, once: bool, interval: Optional[float]) -> None:
    """Run the price alert monitor.

    Polls the configured price feed every interval, records triggers
    and sends notifications. Press Ctrl+C to stop gracefully.

    \b
    Examples:
      pricealert monitor               # Run until interrupted
      pricealert monitor --once        # Single cycle
      pricealert monitor --interval 10 # Poll every 10 seconds
    """
    config = load_cli_config(ctx)
    if interval is not None:
        if interval <= 0:
            raise click.BadParameter("must be positive", param_hint="--interval")
        config = config.model_copy(
            update={"monitor": config.monitor.model_copy(update={"interval_seconds": interval})}
        )

    if once:
        report = asyncio.run(_run_once(config))
        console.print(render_cycle_report(report))
        return

    console.print(Panel(
        f"Database: {config.db_path}\n"
        f"Feed:     {config.feed.kind}\n"
        f"Sink:     {config.notifications.kind}\n"
        f"Interval: {config.monitor.interval_seconds}s",
        title="[bold]Price Alert Monitor[/bold]",
        border_style="cyan",
    ))
    asyncio.run(_run_forever(config))
    console.print("[dim]Monitor stopped[/dim]")


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a template configuration file."""
    from pricealert.config import CONFIG_PATH, create_template_config

    path: Path = ctx.obj.get("config_path") or CONFIG_PATH
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path} (use --force to overwrite)[/yellow]")
        return

    written = create_template_config(path)
    console.print(f"[green]✓ Wrote config template to {written}[/green]")
