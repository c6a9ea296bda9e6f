"""Build monitor components from configuration."""

from typing import Optional

from pricealert.config import Config
from pricealert.db.store import AlertStore
from pricealert.feeds import BasePriceFeed, HttpPriceFeed, StaticPriceFeed
from pricealert.monitor import AlertMonitor
from pricealert.notifications import (
    BaseNotificationSink,
    ConsoleSink,
    NotificationDispatcher,
    WebhookSink,
)


def build_store(config: Config) -> AlertStore:
    return AlertStore(config.db_path)


def build_feed(config: Config) -> BasePriceFeed:
    """Create the price feed named in the config."""
    feed = config.feed
    if feed.kind == "http":
        return HttpPriceFeed(
            base_url=feed.base_url,
            price_field=feed.price_field,
            previous_field=feed.previous_field,
            timeout=config.monitor.fetch_timeout_seconds,
            headers=feed.headers or None,
        )
    return StaticPriceFeed(feed.prices)


def build_sink(config: Config) -> BaseNotificationSink:
    """Create the notification sink named in the config."""
    if config.notifications.kind == "webhook":
        return WebhookSink(config.notifications.webhook_url)
    return ConsoleSink()


def build_monitor(
    config: Config,
    store: Optional[AlertStore] = None,
    feed: Optional[BasePriceFeed] = None,
    sink: Optional[BaseNotificationSink] = None,
) -> AlertMonitor:
    """Wire an AlertMonitor from configuration.

    Components passed explicitly take precedence over the configured ones.
    """
    dispatcher = NotificationDispatcher(
        sink or build_sink(config),
        maxsize=config.monitor.notification_queue_size,
    )
    return AlertMonitor(
        store=store or build_store(config),
        feed=feed or build_feed(config),
        dispatcher=dispatcher,
        settings=config.monitor,
        one_shot_types=config.alert_types.one_shot,
    )
