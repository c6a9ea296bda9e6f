"""Exceptions raised by the alert monitoring core."""

from typing import Optional


class PriceAlertError(Exception):
    """Base class for pricealert errors."""


class FeedUnavailable(PriceAlertError):
    """A price fetch for a symbol failed or timed out."""

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Price feed unavailable for {symbol}: {reason}")


class PersistenceFailure(PriceAlertError):
    """A write to the alert store failed."""

    def __init__(self, alert_id: str, reason: str):
        self.alert_id = alert_id
        self.reason = reason
        super().__init__(f"Failed to persist alert {alert_id}: {reason}")


class NotificationFailure(PriceAlertError):
    """A notification intent could not be queued or delivered."""

    def __init__(self, trigger_id: Optional[str], reason: str):
        self.trigger_id = trigger_id
        self.reason = reason
        super().__init__(f"Notification for trigger {trigger_id} failed: {reason}")


class ConfigError(PriceAlertError):
    """Configuration file is missing or invalid."""
