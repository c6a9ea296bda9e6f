"""Notification intent data model."""

from typing import Any

from pydantic import BaseModel, Field

from pricealert.models.alert import PriceAlert, PriceAlertTrigger


class NotificationIntent(BaseModel):
    """Everything a delivery channel needs without re-querying storage."""

    user_id: str = Field(..., description="Recipient")
    alert_id: str = Field(..., description="Alert that fired")
    trigger_id: str = Field(..., description="Persisted trigger")
    symbol: str = Field(..., description="Instrument identifier")
    alert_type: str = Field(..., description="Alert type")
    trigger_price: float = Field(..., description="Price that caused the crossing")
    change_percent: float = Field(..., description="Percent change from the baseline")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Alert display data")

    model_config = {"frozen": True}

    @classmethod
    def from_trigger(
        cls, alert: PriceAlert, trigger: PriceAlertTrigger
    ) -> "NotificationIntent":
        return cls(
            user_id=trigger.user_id,
            alert_id=trigger.alert_id,
            trigger_id=trigger.id,
            symbol=trigger.symbol,
            alert_type=trigger.alert_type,
            trigger_price=trigger.trigger_price,
            change_percent=trigger.change_percent,
            metadata=dict(alert.metadata),
        )
