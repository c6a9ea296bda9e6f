"""Data models for pricealert."""

from pricealert.models.alert import PriceAlert, PriceAlertTrigger, utc_now
from pricealert.models.alert_type import (
    AlertRule,
    alert_type_names,
    get_alert_rule,
    register_alert_type,
    unregister_alert_type,
)
from pricealert.models.notification import NotificationIntent
from pricealert.models.quote import PriceQuote

__all__ = [
    "AlertRule",
    "NotificationIntent",
    "PriceAlert",
    "PriceAlertTrigger",
    "PriceQuote",
    "alert_type_names",
    "get_alert_rule",
    "register_alert_type",
    "unregister_alert_type",
    "utc_now",
]
