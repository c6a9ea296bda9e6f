"""Threshold evaluation for price alerts.

``evaluate`` is a pure function: the same alert and prices always give
the same decision. Logging of data-quality conditions is left to the
caller, which inspects ``NoTrigger.reason``.
"""

import math
from typing import Union

from pydantic import BaseModel, Field

from pricealert.models import PriceAlert, get_alert_rule

REL_TOLERANCE = 1e-9
ABS_TOLERANCE = 1e-12

REASON_NOT_MET = "condition_not_met"
REASON_ZERO_BASELINE = "zero_baseline"
REASON_UNKNOWN_TYPE = "unknown_alert_type"


class NoTrigger(BaseModel):
    """The alert condition was not met."""

    reason: str = Field(default=REASON_NOT_MET, description="Why the alert did not fire")

    model_config = {"frozen": True}


class Fire(BaseModel):
    """The alert condition was met."""

    trigger_price: float = Field(..., description="Price that caused the crossing")
    previous_price: float = Field(..., description="Baseline price")
    change_percent: float = Field(..., description="Percent change from the baseline")

    model_config = {"frozen": True}


Decision = Union[NoTrigger, Fire]


def change_percent(current_price: float, previous_price: float) -> float:
    """Percent change from previous_price to current_price."""
    return (current_price - previous_price) / previous_price * 100


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=REL_TOLERANCE, abs_tol=ABS_TOLERANCE)


def _at_least(a: float, b: float) -> bool:
    return a > b or _close(a, b)


def _at_most(a: float, b: float) -> bool:
    return a < b or _close(a, b)


def evaluate(alert: PriceAlert, current_price: float, previous_price: float) -> Decision:
    """Decide whether an alert fires.

    Crossing types are edge-triggered: ``price_above`` fires only when the
    previous price was below the target and the current price is at or
    above it; ``price_below`` is the mirror image. Percent types compare
    the change since ``previous_price`` against ``target_value``;
    ``percent_change`` fires on a move of that size in either direction.

    Args:
        alert: Alert to evaluate.
        current_price: Freshly fetched price.
        previous_price: Price at the last evaluation (baseline).

    Returns:
        Fire when the condition is met, NoTrigger otherwise.
    """
    rule = get_alert_rule(alert.alert_type)
    if rule is None:
        return NoTrigger(reason=REASON_UNKNOWN_TYPE)

    # Percent change is undefined and a trigger row needs one.
    if _close(previous_price, 0.0):
        return NoTrigger(reason=REASON_ZERO_BASELINE)

    target = alert.target_value

    if rule.kind == "crossing":
        if rule.direction == "up":
            met = _at_least(current_price, target) and not _at_least(previous_price, target)
        else:
            met = _at_most(current_price, target) and not _at_most(previous_price, target)
    else:
        change = change_percent(current_price, previous_price)
        if rule.direction == "up":
            met = _at_least(change, target)
        elif rule.direction == "down":
            met = _at_most(change, -target)
        else:
            met = _at_least(abs(change), target)

    if not met:
        return NoTrigger()

    return Fire(
        trigger_price=current_price,
        previous_price=previous_price,
        change_percent=change_percent(current_price, previous_price),
    )
