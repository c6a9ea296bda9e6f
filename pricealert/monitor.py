"""Alert monitor: periodic price polling and alert evaluation.

One AlertMonitor runs per process. Each cycle snapshots the active
alerts, fetches one quote per symbol through a bounded pool of workers,
evaluates every alert and commits the resulting trigger and alert state
before the next cycle may start.
"""

import asyncio
import logging
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from pricealert.config import MonitorSettings
from pricealert.db.base import BaseAlertStore
from pricealert.errors import FeedUnavailable, PersistenceFailure
from pricealert.evaluator import (
    REASON_UNKNOWN_TYPE,
    REASON_ZERO_BASELINE,
    Fire,
    NoTrigger,
    evaluate,
)
from pricealert.feeds.base import BasePriceFeed
from pricealert.models import (
    NotificationIntent,
    PriceAlert,
    PriceAlertTrigger,
    PriceQuote,
    get_alert_rule,
    utc_now,
)
from pricealert.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class MonitorState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class CycleReport:
    """Outcome of one monitoring cycle."""

    cycle: int
    started_at: datetime
    duration_seconds: float = 0.0
    alerts_loaded: int = 0
    symbols: list[str] = field(default_factory=list)
    failed_symbols: list[str] = field(default_factory=list)
    evaluations: int = 0
    triggers: list[PriceAlertTrigger] = field(default_factory=list)
    persistence_failures: list[str] = field(default_factory=list)
    notifications_queued: int = 0
    notifications_dropped: int = 0
    load_failed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle": self.cycle,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "alerts_loaded": self.alerts_loaded,
            "symbols": list(self.symbols),
            "failed_symbols": list(self.failed_symbols),
            "evaluations": self.evaluations,
            "triggers": len(self.triggers),
            "persistence_failures": list(self.persistence_failures),
            "notifications_queued": self.notifications_queued,
            "notifications_dropped": self.notifications_dropped,
            "load_failed": self.load_failed,
        }


@dataclass
class MonitorStats:
    """Cumulative counters for a monitor instance."""

    cycles: int = 0
    overruns: int = 0
    consecutive_overruns: int = 0
    triggers: int = 0
    feed_failures: int = 0
    persistence_failures: int = 0
    load_failures: int = 0
    last_cycle: Optional[CycleReport] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycles": self.cycles,
            "overruns": self.overruns,
            "consecutive_overruns": self.consecutive_overruns,
            "triggers": self.triggers,
            "feed_failures": self.feed_failures,
            "persistence_failures": self.persistence_failures,
            "load_failures": self.load_failures,
            "last_cycle": self.last_cycle.to_dict() if self.last_cycle else None,
        }


def group_by_symbol(alerts: Iterable[PriceAlert]) -> dict[str, list[PriceAlert]]:
    """Group alerts by symbol, preserving order within each group."""
    groups: dict[str, list[PriceAlert]] = defaultdict(list)
    for alert in alerts:
        groups[alert.symbol].append(alert)
    return dict(groups)


class AlertMonitor:
    """Periodically evaluates active price alerts.

    Lifecycle is ``STOPPED -> RUNNING -> STOPPED``. ``start`` and ``stop``
    are idempotent. ``stop`` lets an in-flight cycle finish and drains
    queued notifications before returning.
    """

    def __init__(
        self,
        store: BaseAlertStore,
        feed: BasePriceFeed,
        dispatcher: NotificationDispatcher,
        settings: MonitorSettings,
        one_shot_types: Optional[Iterable[str]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the monitor.

        Args:
            store: Alert storage.
            feed: Price source.
            dispatcher: Queue feeding the notification sink.
            settings: Interval, fetch timeout and worker bound.
            one_shot_types: Alert types that deactivate after firing.
                None uses each registered type's default.
            clock: Source of trigger timestamps.
        """
        self._store = store
        self._feed = feed
        self._dispatcher = dispatcher
        self.settings = settings
        self._one_shot_types = set(one_shot_types) if one_shot_types is not None else None
        self._clock = clock

        self._state = MonitorState.STOPPED
        self._driver: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._cycle_number = 0
        self._stats = MonitorStats()

        # Last committed price per alert; the baseline for the next cycle.
        self._last_prices: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Held for a whole cycle; cycles never overlap however they are started.
        self._cycle_lock = asyncio.Lock()

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def stats(self) -> MonitorStats:
        return self._stats

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    def is_one_shot(self, alert_type: str) -> bool:
        """Whether alerts of this type deactivate after firing."""
        if self._one_shot_types is not None:
            return alert_type in self._one_shot_types
        rule = get_alert_rule(alert_type)
        return rule.one_shot if rule else False

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Begin periodic cycles. The first cycle runs immediately."""
        if self._state is MonitorState.RUNNING:
            return
        self._state = MonitorState.RUNNING
        self._dispatcher.start()
        self._driver = asyncio.create_task(self._drive(), name="pricealert-monitor")
        logger.info(
            "Alert monitor started (interval=%ss, timeout=%ss, workers=%d)",
            self.settings.interval_seconds,
            self.settings.fetch_timeout_seconds,
            self.settings.max_concurrency,
        )

    async def stop(self) -> None:
        """Stop scheduling, let the in-flight cycle finish, drain notifications."""
        if self._state is MonitorState.STOPPED:
            return
        self._state = MonitorState.STOPPED

        if self._driver is not None:
            self._driver.cancel()
            try:
                await self._driver
            except asyncio.CancelledError:
                pass
            self._driver = None

        if self._cycle_task is not None:
            await self._cycle_task
            self._cycle_task = None

        await self._dispatcher.stop()
        logger.info("Alert monitor stopped after %d cycles", self._stats.cycles)

    async def aclose(self) -> None:
        """Stop the monitor and close the feed and notification sink."""
        await self.stop()
        await self._dispatcher.stop()
        await self._feed.aclose()
        await self._dispatcher.sink.aclose()

    async def wait_for_cycle(self) -> None:
        """Wait for the in-flight cycle, if any."""
        if self._cycle_task is not None:
            await self._cycle_task

    async def _drive(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            self._tick()
            next_tick += self.settings.interval_seconds
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def _tick(self) -> bool:
        """Start a cycle unless one is still running.

        Returns:
            True if a cycle was started, False if the tick was skipped.
        """
        if self._cycle_task is not None and not self._cycle_task.done():
            self._stats.overruns += 1
            self._stats.consecutive_overruns += 1
            logger.warning(
                "Scheduler overrun: cycle %d still running, skipping tick "
                "(%d consecutive; interval %ss may be too short)",
                self._cycle_number,
                self._stats.consecutive_overruns,
                self.settings.interval_seconds,
            )
            return False

        self._stats.consecutive_overruns = 0
        self._cycle_task = asyncio.create_task(self._run_cycle_safely())
        return True

    async def _run_cycle_safely(self) -> Optional[CycleReport]:
        try:
            return await self.run_cycle()
        except Exception:
            logger.exception("Unexpected error in monitoring cycle %d", self._cycle_number)
            return None

    # ==================== Cycle ====================

    async def run_cycle(self) -> CycleReport:
        """Run one full monitoring cycle.

        A call made while another cycle is in flight waits for it to
        finish first, so its evaluations see the committed prices.

        Returns:
            Report describing what the cycle did.
        """
        async with self._cycle_lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> CycleReport:
        self._dispatcher.start()
        self._cycle_number += 1
        report = CycleReport(cycle=self._cycle_number, started_at=utc_now())
        started = time.monotonic()

        try:
            alerts = await asyncio.to_thread(self._store.list_active_alerts)
        except Exception as e:
            report.load_failed = True
            self._stats.load_failures += 1
            logger.error("Cycle %d: failed to load active alerts: %s", report.cycle, e)
            return self._finish(report, started)

        report.alerts_loaded = len(alerts)
        self._prune({alert.id for alert in alerts})

        groups = group_by_symbol(alerts)
        report.symbols = list(groups)
        logger.debug(
            "Cycle %d: %d active alerts across %d symbols",
            report.cycle,
            len(alerts),
            len(groups),
        )

        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def process_with_semaphore(symbol: str, group: list[PriceAlert]) -> None:
            async with semaphore:
                await self._process_symbol(symbol, group, report)

        results = await asyncio.gather(
            *(process_with_semaphore(symbol, group) for symbol, group in groups.items()),
            return_exceptions=True,
        )
        for symbol, result in zip(groups, results):
            if isinstance(result, Exception):
                logger.error("Cycle %d: processing %s failed: %s", report.cycle, symbol, result)

        return self._finish(report, started)

    def _finish(self, report: CycleReport, started: float) -> CycleReport:
        report.duration_seconds = time.monotonic() - started
        self._stats.cycles += 1
        self._stats.triggers += len(report.triggers)
        self._stats.feed_failures += len(report.failed_symbols)
        self._stats.persistence_failures += len(report.persistence_failures)
        self._stats.last_cycle = report
        logger.info(
            "Cycle %d finished in %.2fs: %d evaluated, %d triggered, %d feed failures, "
            "%d persistence failures",
            report.cycle,
            report.duration_seconds,
            report.evaluations,
            len(report.triggers),
            len(report.failed_symbols),
            len(report.persistence_failures),
        )
        return report

    def _prune(self, active_ids: set[str]) -> None:
        for alert_id in list(self._last_prices):
            if alert_id not in active_ids:
                del self._last_prices[alert_id]
        for alert_id in list(self._locks):
            if alert_id not in active_ids:
                del self._locks[alert_id]

    async def _fetch(self, symbol: str) -> PriceQuote:
        timeout = self.settings.fetch_timeout_seconds
        try:
            return await asyncio.wait_for(self._feed.get_price(symbol), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FeedUnavailable(symbol, f"timed out after {timeout}s") from e
        except FeedUnavailable:
            raise
        except Exception as e:
            raise FeedUnavailable(symbol, str(e) or type(e).__name__) from e

    async def _process_symbol(
        self, symbol: str, alerts: list[PriceAlert], report: CycleReport
    ) -> None:
        try:
            quote = await self._fetch(symbol)
        except FeedUnavailable as e:
            report.failed_symbols.append(symbol)
            logger.warning("Cycle %d: %s; skipping %d alerts", report.cycle, e, len(alerts))
            return

        for alert in alerts:
            await self._process_alert(alert, quote, report)

    def _baseline(self, alert: PriceAlert, quote: PriceQuote) -> tuple[float, bool]:
        """Baseline price, and whether it came from the feed rather than an observation."""
        if alert.id in self._last_prices:
            return self._last_prices[alert.id], False
        if alert.current_value is not None:
            return alert.current_value, False
        return quote.previous_price, True

    async def _process_alert(
        self, alert: PriceAlert, quote: PriceQuote, report: CycleReport
    ) -> None:
        lock = self._locks.setdefault(alert.id, asyncio.Lock())
        async with lock:
            previous, from_feed = self._baseline(alert, quote)
            decision = evaluate(alert, quote.price, previous)
            report.evaluations += 1

            if isinstance(decision, Fire):
                await self._fire(alert, decision, report)
                return

            self._log_no_trigger(alert, decision)
            if decision.reason == REASON_ZERO_BASELINE and from_feed and self._is_crossing(alert):
                # Recording the price now would hide a crossing not yet seen.
                return
            await self._observe(alert, quote.price, report)

    def _is_crossing(self, alert: PriceAlert) -> bool:
        rule = get_alert_rule(alert.alert_type)
        return rule is not None and rule.kind == "crossing"

    def _log_no_trigger(self, alert: PriceAlert, decision: NoTrigger) -> None:
        if decision.reason == REASON_ZERO_BASELINE:
            logger.warning(
                "Alert %s (%s): baseline price is zero, percent change undefined",
                alert.id,
                alert.symbol,
            )
        elif decision.reason == REASON_UNKNOWN_TYPE:
            logger.warning("Alert %s: unknown alert type '%s'", alert.id, alert.alert_type)

    async def _observe(self, alert: PriceAlert, price: float, report: CycleReport) -> None:
        try:
            updated = await asyncio.to_thread(self._store.update_alert, alert.id, price)
        except Exception as e:
            failure = PersistenceFailure(alert.id, str(e) or type(e).__name__)
            report.persistence_failures.append(alert.id)
            logger.error("Cycle %d: %s", report.cycle, failure)
            return

        if updated:
            self._last_prices[alert.id] = price
        else:
            self._last_prices.pop(alert.id, None)

    async def _fire(self, alert: PriceAlert, decision: Fire, report: CycleReport) -> None:
        timestamp = self._clock()
        if alert.last_triggered is not None and alert.last_triggered > timestamp:
            timestamp = alert.last_triggered

        trigger = PriceAlertTrigger(
            id=f"trigger_{uuid.uuid4().hex}",
            alert_id=alert.id,
            symbol=alert.symbol,
            alert_type=alert.alert_type,
            user_id=alert.user_id,
            trigger_price=decision.trigger_price,
            previous_price=decision.previous_price,
            change_percent=decision.change_percent,
            timestamp=timestamp,
        )
        deactivate = self.is_one_shot(alert.alert_type)

        try:
            committed = await asyncio.to_thread(
                self._store.commit_trigger, trigger, decision.trigger_price, deactivate
            )
        except Exception as e:
            failure = PersistenceFailure(alert.id, str(e) or type(e).__name__)
            report.persistence_failures.append(alert.id)
            logger.error("Cycle %d: %s; will retry next cycle", report.cycle, failure)
            return

        if not committed:
            self._last_prices.pop(alert.id, None)
            logger.info("Alert %s is no longer active; trigger discarded", alert.id)
            return

        self._last_prices[alert.id] = decision.trigger_price
        report.triggers.append(trigger)
        logger.info(
            "Alert %s fired: %s %s target=%s price=%s previous=%s change=%+.3f%%%s",
            alert.id,
            alert.symbol,
            alert.alert_type,
            alert.target_value,
            decision.trigger_price,
            decision.previous_price,
            decision.change_percent,
            " (deactivated)" if deactivate else "",
        )

        if self._dispatcher.submit(NotificationIntent.from_trigger(alert, trigger)):
            report.notifications_queued += 1
        else:
            report.notifications_dropped += 1
