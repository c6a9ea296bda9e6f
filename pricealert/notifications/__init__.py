"""Notification delivery for pricealert."""

from pricealert.notifications.base import BaseNotificationSink, format_body, format_title
from pricealert.notifications.dispatcher import NotificationDispatcher
from pricealert.notifications.sinks import ConsoleSink, MemorySink
from pricealert.notifications.webhook import WebhookSink

__all__ = [
    "BaseNotificationSink",
    "ConsoleSink",
    "MemorySink",
    "NotificationDispatcher",
    "WebhookSink",
    "format_body",
    "format_title",
]
