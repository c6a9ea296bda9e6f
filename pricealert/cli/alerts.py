"""Alert management commands for pricealert CLI.

Handles alert operations including creating, listing, removing and
re-activating alerts. Stands in for the application's API layer.
"""

import re
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pricealert.cli.main import load_cli_config
from pricealert.models import PriceAlert, alert_type_names, get_alert_rule

console = Console()


# Supported alert condition patterns
CONDITION_PATTERNS = {
    "price_above": re.compile(r"^\s*price\s*>=?\s*([\d.]+)\s*$", re.IGNORECASE),
    "price_below": re.compile(r"^\s*price\s*<=?\s*([\d.]+)\s*$", re.IGNORECASE),
    "percent_change_up": re.compile(r"^\s*change\s*>=?\s*\+?([\d.]+)\s*%?\s*$", re.IGNORECASE),
    "percent_change_down": re.compile(r"^\s*change\s*<=?\s*-([\d.]+)\s*%?\s*$", re.IGNORECASE),
}

# "<alert_type> <value>", for any registered type
TYPED_PATTERN = re.compile(r"^\s*([a-z_]+)\s+([\d.]+)\s*$", re.IGNORECASE)


def parse_condition(condition: str) -> Optional[tuple[str, float]]:
    """Parse a condition string into an alert type and target value.

    Args:
        condition: e.g. "price > 2600", "change < -5%" or "price_above 2600".

    Returns:
        (alert_type, target_value), or None if the condition is not supported.
    """
    for alert_type, pattern in CONDITION_PATTERNS.items():
        match = pattern.match(condition)
        if match:
            try:
                return alert_type, float(match.group(1))
            except ValueError:
                return None

    match = TYPED_PATTERN.match(condition)
    if match and get_alert_rule(match.group(1).lower()) is not None:
        try:
            return match.group(1).lower(), float(match.group(2))
        except ValueError:
            return None
    return None


def describe_alert(alert: PriceAlert) -> str:
    """Human readable condition of an alert."""
    rule = get_alert_rule(alert.alert_type)
    if rule is None:
        return f"{alert.alert_type} {alert.target_value:g}"
    if rule.kind == "crossing":
        op = ">=" if rule.direction == "up" else "<="
        return f"price {op} {alert.target_value:,.2f}"
    sign = {"up": "+", "down": "-"}.get(rule.direction, "±")
    return f"change {sign}{alert.target_value:g}%"


def _get_alert_store(ctx: click.Context):
    """Get the alert store instance."""
    from pricealert.factory import build_store

    return build_store(load_cli_config(ctx))


@click.command("alert")
@click.argument("symbol")
@click.argument("condition")
@click.option("--user", "-u", "user_id", required=True, help="Owner of the alert.")
@click.option("--company", default=None, help="Company name shown in notifications.")
@click.option(
    "--method",
    type=click.Choice(["WEB_PUSH", "EMAIL", "IN_APP"]),
    default=None,
    help="Preferred notification method.",
)
@click.pass_context
def create_alert(
    ctx: click.Context,
    symbol: str,
    condition: str,
    user_id: str,
    company: Optional[str],
    method: Optional[str],
) -> None:
    """Create a price alert.

    SYMBOL is the instrument identifier (e.g., 7203, AAPL).
    CONDITION is the alert condition (e.g., "price > 2600", "change > 5%").

    \b
    Supported conditions:
      price > VALUE     - Alert when price crosses above VALUE (one-shot)
      price < VALUE     - Alert when price crosses below VALUE (one-shot)
      change > VALUE%   - Alert on a rise of VALUE% between cycles
      change < -VALUE%  - Alert on a drop of VALUE% between cycles
      percent_change VALUE - Alert on a move of VALUE% either way
      TYPE VALUE        - Any registered alert type, e.g. "price_above 2600"

    \b
    Examples:
      pricealert alert 7203 "price > 2600" -u 1 --company Toyota
      pricealert alert 9984 "change > 5%" -u 1
    """
    parsed = parse_condition(condition)
    if parsed is None:
        console.print(Panel(
            f"[red]Invalid condition: {condition}[/red]\n\n"
            "[bold]Supported conditions:[/bold]\n"
            "  price > VALUE\n"
            "  price < VALUE\n"
            "  change > VALUE%\n"
            "  change < -VALUE%\n"
            f"  TYPE VALUE  ({', '.join(alert_type_names())})",
            title="[bold red]Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    alert_type, target_value = parsed
    metadata = {}
    if company:
        metadata["companyName"] = company
    if method:
        metadata["notificationMethod"] = method

    try:
        store = _get_alert_store(ctx)
        alert = store.create_alert(
            user_id=user_id,
            symbol=symbol,
            alert_type=alert_type,
            target_value=target_value,
            metadata=metadata,
        )
    except ValueError as e:
        console.print(Panel(
            f"[red]Failed to create alert:[/red]\n\n{str(e)}",
            title="[bold red]Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    console.print(Panel(
        f"[bold green]Alert Created[/bold green]\n\n"
        f"ID:        {alert.id}\n"
        f"User:      {alert.user_id}\n"
        f"Symbol:    {alert.symbol}\n"
        f"Condition: {describe_alert(alert)}\n"
        f"Type:      {alert.alert_type}",
        title="[bold]New Alert[/bold]",
        border_style="green",
    ))


@click.command("alerts")
@click.option("--user", "-u", "user_id", default=None, help="Only show this user's alerts.")
@click.option("--remove", "remove_id", default=None, help="Remove alert with specified ID.")
@click.option("--activate", "activate_id", default=None, help="Re-activate an alert.")
@click.option("--deactivate", "deactivate_id", default=None, help="Deactivate an alert.")
@click.pass_context
def list_alerts(
    ctx: click.Context,
    user_id: Optional[str],
    remove_id: Optional[str],
    activate_id: Optional[str],
    deactivate_id: Optional[str],
) -> None:
    """Display or manage alerts.

    Shows all alerts. Use --remove, --activate or --deactivate with an
    alert ID to change one.

    \b
    Examples:
      pricealert alerts                       # List all alerts
      pricealert alerts -u 1                  # List user 1's alerts
      pricealert alerts --remove alert_ab12   # Remove an alert
      pricealert alerts --activate alert_ab12 # Re-arm a fired alert
    """
    store = _get_alert_store(ctx)

    if remove_id is not None:
        alert = store.get_alert(remove_id)
        if alert is None or not store.delete_alert(remove_id, user_id):
            console.print(f"[yellow]Alert with ID {remove_id} not found[/yellow]")
            return
        console.print(f"[green]✓ Removed alert {remove_id} ({alert.symbol}: {describe_alert(alert)})[/green]")
        return

    for alert_id, active in ((activate_id, True), (deactivate_id, False)):
        if alert_id is None:
            continue
        if not store.set_alert_active(alert_id, active):
            console.print(f"[yellow]Alert with ID {alert_id} not found[/yellow]")
            return
        state = "activated" if active else "deactivated"
        console.print(f"[green]✓ Alert {alert_id} {state}[/green]")
        return

    alerts = store.get_user_alerts(user_id)

    if not alerts:
        console.print(Panel(
            "[dim]No alerts set. Use 'pricealert alert SYMBOL CONDITION -u USER' to create one.[/dim]",
            title="[bold]Alerts[/bold]",
            border_style="dim",
        ))
        return

    table = Table(
        title="Price Alerts",
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("ID", style="dim")
    table.add_column("User")
    table.add_column("Symbol", style="bold")
    table.add_column("Condition")
    table.add_column("Last Price", justify="right")
    table.add_column("Last Triggered", style="dim")
    table.add_column("Status", justify="center")

    for alert in alerts:
        status = "[green]● Active[/green]" if alert.is_active else "[dim]○ Inactive[/dim]"
        last_price = f"{alert.current_value:,.2f}" if alert.current_value is not None else "-"
        last_triggered = (
            alert.last_triggered.strftime("%Y-%m-%d %H:%M") if alert.last_triggered else "-"
        )
        symbol = alert.symbol
        if alert.display_name != alert.symbol:
            symbol = f"{alert.symbol} ({alert.display_name})"
        table.add_row(
            alert.id,
            alert.user_id,
            symbol,
            describe_alert(alert),
            last_price,
            last_triggered,
            status,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(alerts)} alerts[/dim]")
