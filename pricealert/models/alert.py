"""Price alert and trigger data models."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class PriceAlert(BaseModel):
    """A user-defined rule comparing a symbol's price against a threshold."""

    id: str = Field(..., min_length=1, description="Alert identifier")
    user_id: str = Field(..., min_length=1, description="Owner reference")
    symbol: str = Field(..., min_length=1, description="Instrument identifier")
    alert_type: str = Field(
        ..., min_length=1, description="Alert type (e.g., 'price_above')"
    )
    target_value: float = Field(
        ..., description="Absolute price for price_* types, percent for percent_change_*"
    )
    current_value: Optional[float] = Field(
        default=None, description="Last price observed by the monitor"
    )
    is_active: bool = Field(default=True, description="Evaluated only when true")
    last_triggered: Optional[datetime] = Field(
        default=None, description="Time of the most recent trigger"
    )
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update time")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Display data (companyName, notificationMethod)"
    )

    model_config = {"frozen": True}

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("symbol must not be blank")
        return value

    @property
    def display_name(self) -> str:
        """Company name from metadata, falling back to the symbol."""
        return self.metadata.get("companyName") or self.symbol


class PriceAlertTrigger(BaseModel):
    """Immutable record of one threshold crossing.

    Symbol, alert type and user are copied from the parent alert so the
    record stays correct if the alert is later edited or deleted.
    """

    id: str = Field(..., min_length=1, description="Trigger identifier")
    alert_id: str = Field(..., min_length=1, description="Parent alert")
    symbol: str = Field(..., min_length=1, description="Instrument identifier")
    alert_type: str = Field(..., min_length=1, description="Alert type at trigger time")
    user_id: str = Field(..., min_length=1, description="Owner at trigger time")
    trigger_price: float = Field(..., description="Price that caused the crossing")
    previous_price: float = Field(..., description="Baseline price for the comparison")
    change_percent: float = Field(..., description="Percent change from the baseline")
    timestamp: datetime = Field(default_factory=utc_now, description="Creation time")

    model_config = {"frozen": True}
