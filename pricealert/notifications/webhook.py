"""Webhook integration for sending alert notifications.

Posts a Slack-compatible payload; any endpoint accepting the same
JSON works.
"""

import logging
from typing import Optional

import httpx

from pricealert.models import NotificationIntent
from pricealert.notifications.base import BaseNotificationSink, format_body, format_title

logger = logging.getLogger(__name__)


def build_payload(intent: NotificationIntent) -> dict:
    """Build the webhook message for a notification intent."""
    color = "#00ff88" if intent.change_percent >= 0 else "#ff4757"
    return {
        "attachments": [
            {
                "color": color,
                "blocks": [
                    {
                        "type": "header",
                        "text": {
                            "type": "plain_text",
                            "text": format_title(intent),
                        },
                    },
                    {
                        "type": "section",
                        "fields": [
                            {
                                "type": "mrkdwn",
                                "text": f"*Alert Type:*\n{intent.alert_type.replace('_', ' ').title()}",
                            },
                            {
                                "type": "mrkdwn",
                                "text": f"*Symbol:*\n{intent.symbol}",
                            },
                        ],
                    },
                    {
                        "type": "section",
                        "text": {
                            "type": "mrkdwn",
                            "text": f"*Details:*\n{format_body(intent)}",
                        },
                    },
                ],
            }
        ],
        "alert": intent.model_dump(),
    }


class WebhookSink(BaseNotificationSink):
    """Sends notification intents to a webhook URL."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not webhook_url:
            raise ValueError("WebhookSink requires a webhook_url")
        self.webhook_url = webhook_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def notify(self, intent: NotificationIntent) -> bool:
        """Post a notification to the webhook.

        Returns:
            True if the endpoint answered with a 2xx status, False otherwise.
        """
        try:
            response = await self._client.post(self.webhook_url, json=build_payload(intent))
        except httpx.TimeoutException:
            logger.error("Timeout sending webhook notification for %s", intent.trigger_id)
            return False
        except httpx.HTTPError as e:
            logger.error("Error sending webhook notification for %s: %s", intent.trigger_id, e)
            return False

        if response.is_success:
            logger.info("Webhook notification sent for %s/%s", intent.symbol, intent.alert_type)
            return True

        logger.error("Webhook error: %s - %s", response.status_code, response.text)
        return False

    async def aclose(self) -> None:
        await self._client.aclose()
