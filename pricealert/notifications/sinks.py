"""Local notification sinks."""

from rich.console import Console
from rich.panel import Panel

from pricealert.models import NotificationIntent
from pricealert.notifications.base import BaseNotificationSink, format_body, format_title


class ConsoleSink(BaseNotificationSink):
    """Print notifications to the terminal."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def notify(self, intent: NotificationIntent) -> bool:
        color = "green" if intent.change_percent >= 0 else "red"
        self.console.print(Panel(
            f"{format_body(intent)}\n\n"
            f"[dim]User: {intent.user_id}  Alert: {intent.alert_id}  "
            f"Trigger: {intent.trigger_id}[/dim]",
            title=f"[bold {color}]{format_title(intent)}[/bold {color}]",
            border_style=color,
        ))
        return True


class MemorySink(BaseNotificationSink):
    """Collect notifications in memory."""

    def __init__(self):
        self.intents: list[NotificationIntent] = []

    async def notify(self, intent: NotificationIntent) -> bool:
        self.intents.append(intent)
        return True
