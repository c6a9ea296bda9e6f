"""Trigger history commands for pricealert CLI."""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pricealert.cli.main import load_cli_config
from pricealert.models import PriceAlertTrigger

console = Console()


def _get_alert_store(ctx: click.Context):
    """Get the alert store instance."""
    from pricealert.factory import build_store

    return build_store(load_cli_config(ctx))


def build_trigger_table(triggers: list[PriceAlertTrigger], title: str) -> Table:
    """Render triggers as a rich table, newest first."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Time", style="dim")
    table.add_column("Alert", style="dim")
    table.add_column("User")
    table.add_column("Symbol", style="bold")
    table.add_column("Type")
    table.add_column("Price", justify="right")
    table.add_column("Previous", justify="right")
    table.add_column("Change", justify="right")

    for trigger in triggers:
        color = "green" if trigger.change_percent >= 0 else "red"
        table.add_row(
            trigger.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            trigger.alert_id,
            trigger.user_id,
            trigger.symbol,
            trigger.alert_type,
            f"{trigger.trigger_price:,.2f}",
            f"{trigger.previous_price:,.2f}",
            f"[{color}]{trigger.change_percent:+.2f}%[/{color}]",
        )
    return table


@click.command("triggers")
@click.option("--alert", "alert_id", default=None, help="Only show triggers of this alert.")
@click.option("--user", "-u", "user_id", default=None, help="Only show this user's triggers.")
@click.option("--limit", "-n", type=int, default=20, show_default=True, help="Rows to show.")
@click.pass_context
def triggers(
    ctx: click.Context,
    alert_id: Optional[str],
    user_id: Optional[str],
    limit: int,
) -> None:
    """Show alert trigger history.

    \b
    Examples:
      pricealert triggers                   # Latest 20 triggers
      pricealert triggers -u 1 -n 50        # User 1's latest 50
      pricealert triggers --alert alert_ab12
    """
    store = _get_alert_store(ctx)
    history = store.get_triggers(alert_id=alert_id, user_id=user_id, limit=limit)

    if not history:
        console.print("[dim]No triggers recorded[/dim]")
        return

    console.print(build_trigger_table(history, "Trigger History"))


@click.command("stats")
@click.option("--user", "-u", "user_id", required=True, help="User to summarize.")
@click.pass_context
def stats(ctx: click.Context, user_id: str) -> None:
    """Show alert statistics for a user."""
    store = _get_alert_store(ctx)
    summary = store.get_alert_stats(user_id)

    console.print(Panel(
        f"Total alerts:     {summary['total_alerts']}\n"
        f"Active alerts:    {summary['active_alerts']}\n"
        f"Triggered alerts: {summary['triggered_alerts']}",
        title=f"[bold]Alert Stats: user {user_id}[/bold]",
        border_style="cyan",
    ))

    if summary["recent_triggers"]:
        console.print(build_trigger_table(summary["recent_triggers"], "Recent Triggers"))
