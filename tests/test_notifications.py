"""Tests for notification sinks and the dispatcher queue."""

import asyncio
import json

import httpx
import pytest
from rich.console import Console

from pricealert.models import NotificationIntent
from pricealert.notifications import (
    BaseNotificationSink,
    ConsoleSink,
    MemorySink,
    NotificationDispatcher,
    WebhookSink,
    format_body,
    format_title,
)
from pricealert.notifications.webhook import build_payload


def make_intent(trigger_id: str = "trigger_1", change: float = 1.0067, **metadata) -> NotificationIntent:
    return NotificationIntent(
        user_id="1",
        alert_id="alert_sample_1",
        trigger_id=trigger_id,
        symbol="7203",
        alert_type="price_above",
        trigger_price=2650.5,
        change_percent=change,
        metadata=metadata,
    )


class FlakySink(BaseNotificationSink):
    """Raises for the trigger ids in ``broken``; records the rest."""

    def __init__(self, broken: set[str]):
        self.broken = broken
        self.seen: list[str] = []

    async def notify(self, intent):
        if intent.trigger_id in self.broken:
            raise ConnectionError("push gateway unreachable")
        self.seen.append(intent.trigger_id)
        return True


class RefusingSink(BaseNotificationSink):
    async def notify(self, intent):
        return False


class TestFormatting:
    def test_title_prefers_company_name(self):
        assert format_title(make_intent(companyName="Toyota")) == "Price alert: Toyota"

    def test_title_falls_back_to_symbol(self):
        assert format_title(make_intent()) == "Price alert: 7203"

    def test_body(self):
        body = format_body(make_intent(change=-2.5))
        assert "7203 triggered price above at 2,650.50" in body
        assert "(-2.50%)" in body


class TestDispatcher:
    """
    **Feature: price-alert-monitor, Property 13: Bounded Notification Queue**

    *For any* burst larger than the queue, the overflow is dropped and
    counted without blocking the submitter.
    """

    def test_full_queue_drops_intents(self):
        sink = MemorySink()

        async def scenario():
            dispatcher = NotificationDispatcher(sink, maxsize=2)
            results = [dispatcher.submit(make_intent(f"trigger_{i}")) for i in range(5)]
            assert dispatcher.pending == 2
            await dispatcher.drain()
            await dispatcher.stop()
            return dispatcher, results

        dispatcher, results = asyncio.run(scenario())

        assert results == [True, True, False, False, False]
        assert dispatcher.dropped == 3
        assert dispatcher.delivered == 2
        assert [i.trigger_id for i in sink.intents] == ["trigger_0", "trigger_1"]

    def test_sink_errors_are_counted_not_raised(self):
        sink = FlakySink(broken={"trigger_1"})

        async def scenario():
            dispatcher = NotificationDispatcher(sink, maxsize=10)
            dispatcher.start()
            for i in range(3):
                dispatcher.submit(make_intent(f"trigger_{i}"))
            await dispatcher.stop()
            return dispatcher

        dispatcher = asyncio.run(scenario())

        assert sink.seen == ["trigger_0", "trigger_2"]
        assert dispatcher.failed == 1
        assert dispatcher.delivered == 2
        assert not dispatcher.is_running

    def test_refused_delivery_is_a_failure(self):
        async def scenario():
            dispatcher = NotificationDispatcher(RefusingSink(), maxsize=10)
            dispatcher.start()
            dispatcher.submit(make_intent())
            await dispatcher.stop()
            return dispatcher

        dispatcher = asyncio.run(scenario())
        assert dispatcher.failed == 1

    def test_start_is_idempotent(self):
        async def scenario():
            dispatcher = NotificationDispatcher(MemorySink(), maxsize=10)
            dispatcher.start()
            consumer = dispatcher._consumer
            dispatcher.start()
            assert dispatcher._consumer is consumer
            await dispatcher.stop()
            await dispatcher.stop()

        asyncio.run(scenario())

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            NotificationDispatcher(MemorySink(), maxsize=0)


class TestConsoleSink:
    def test_prints_panel(self):
        console = Console(record=True, width=100)

        delivered = asyncio.run(ConsoleSink(console).notify(make_intent(companyName="Toyota")))

        assert delivered
        output = console.export_text()
        assert "Price alert: Toyota" in output
        assert "alert_sample_1" in output


class TestWebhookSink:
    def test_payload_shape(self):
        payload = build_payload(make_intent(companyName="Toyota"))

        attachment = payload["attachments"][0]
        assert attachment["color"] == "#00ff88"
        assert attachment["blocks"][0]["text"]["text"] == "Price alert: Toyota"
        assert payload["alert"]["trigger_id"] == "trigger_1"

    def test_negative_change_is_red(self):
        assert build_payload(make_intent(change=-1.0))["attachments"][0]["color"] == "#ff4757"

    def test_posts_payload(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(200, text="ok")

        async def scenario():
            sink = WebhookSink("https://hooks.example.com/T000/B000", transport=httpx.MockTransport(handler))
            try:
                return await sink.notify(make_intent())
            finally:
                await sink.aclose()

        assert asyncio.run(scenario())
        assert received[0]["alert"]["alert_id"] == "alert_sample_1"

    @pytest.mark.parametrize("failure", ["status", "connect", "timeout"])
    def test_failures_return_false(self, failure):
        def handler(request: httpx.Request) -> httpx.Response:
            if failure == "connect":
                raise httpx.ConnectError("refused", request=request)
            if failure == "timeout":
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(404, text="no_service")

        async def scenario():
            sink = WebhookSink("https://hooks.example.com/T000/B000", transport=httpx.MockTransport(handler))
            try:
                return await sink.notify(make_intent())
            finally:
                await sink.aclose()

        assert asyncio.run(scenario()) is False

    def test_requires_url(self):
        with pytest.raises(ValueError):
            WebhookSink("")
