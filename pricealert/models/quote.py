"""Price quote data model."""

import math
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from pricealert.models.alert import utc_now


class PriceQuote(BaseModel):
    """Latest known price for a symbol plus its previous reference price."""

    symbol: str = Field(..., min_length=1, description="Instrument identifier")
    price: float = Field(..., ge=0, description="Latest price")
    previous_price: float = Field(..., ge=0, description="Previous reference price")
    timestamp: datetime = Field(default_factory=utc_now, description="Quote time")

    model_config = {"frozen": True}

    @field_validator("price", "previous_price")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("price must be finite")
        return value
