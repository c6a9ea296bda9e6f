"""Bounded queue between the alert monitor and a notification sink."""

import asyncio
import logging
from typing import Optional

from pricealert.errors import NotificationFailure
from pricealert.models import NotificationIntent
from pricealert.notifications.base import BaseNotificationSink

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Delivers notification intents to a sink from a background task.

    ``submit`` never blocks the caller: when the queue is full the intent
    is dropped and counted as a failure. Delivery failures are logged and
    never retried here.
    """

    def __init__(self, sink: BaseNotificationSink, maxsize: int):
        if maxsize < 1:
            raise ValueError("Notification queue size must be at least 1")
        self.sink = sink
        self.maxsize = maxsize
        self._queue: asyncio.Queue[NotificationIntent] = asyncio.Queue(maxsize=maxsize)
        self._consumer: Optional[asyncio.Task] = None
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        """Intents waiting for delivery."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def start(self) -> None:
        """Start the delivery task. Must be called from a running event loop."""
        if self.is_running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="pricealert-notifications")

    def submit(self, intent: NotificationIntent) -> bool:
        """Queue an intent for delivery.

        Returns:
            True if queued, False if the queue was full.
        """
        try:
            self._queue.put_nowait(intent)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            failure = NotificationFailure(intent.trigger_id, "notification queue full")
            logger.warning("%s", failure)
            return False

    async def drain(self) -> None:
        """Wait until every queued intent has been handled."""
        if not self.is_running and self.pending:
            self.start()
        await self._queue.join()

    async def stop(self) -> None:
        """Deliver what is queued, then stop the delivery task."""
        if self._consumer is None:
            return
        await self.drain()
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def _consume(self) -> None:
        while True:
            intent = await self._queue.get()
            try:
                await self._deliver(intent)
            finally:
                self._queue.task_done()

    async def _deliver(self, intent: NotificationIntent) -> None:
        try:
            delivered = await self.sink.notify(intent)
        except Exception as e:
            delivered = False
            reason = str(e) or type(e).__name__
        else:
            reason = "sink reported failure"

        if delivered:
            self.delivered += 1
            return

        self.failed += 1
        logger.warning("%s", NotificationFailure(intent.trigger_id, reason))
