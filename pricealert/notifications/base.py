"""Notification sink interface for pricealert."""

from abc import ABC, abstractmethod

from pricealert.models import NotificationIntent


class BaseNotificationSink(ABC):
    """Abstract base class for notification delivery channels."""

    @abstractmethod
    async def notify(self, intent: NotificationIntent) -> bool:
        """Deliver a notification intent.

        Args:
            intent: Notification to deliver.

        Returns:
            True if delivered, False otherwise.
        """
        pass

    async def aclose(self) -> None:
        """Release any resources held by the sink."""
        return None


def format_title(intent: NotificationIntent) -> str:
    """Human readable title for a notification."""
    name = intent.metadata.get("companyName") or intent.symbol
    return f"Price alert: {name}"


def format_body(intent: NotificationIntent) -> str:
    """Human readable body for a notification."""
    condition = intent.alert_type.replace("_", " ")
    return (
        f"{intent.symbol} triggered {condition} at {intent.trigger_price:,.2f} "
        f"({intent.change_percent:+.2f}%)"
    )
