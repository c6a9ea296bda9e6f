"""Alert type registry.

Each alert type maps to an AlertRule describing how it is evaluated
and whether it retires itself after firing.
"""

from typing import Literal

from pydantic import BaseModel, Field


class AlertRule(BaseModel):
    """Evaluation semantics for one alert type."""

    kind: Literal["crossing", "percent"] = Field(
        ..., description="'crossing' compares prices, 'percent' compares percent change"
    )
    direction: Literal["up", "down", "either"] = Field(
        ..., description="Direction of the move; 'either' compares the absolute change"
    )
    one_shot: bool = Field(..., description="Deactivate the alert after it fires")

    model_config = {"frozen": True}


BUILTIN_ALERT_TYPES: dict[str, AlertRule] = {
    "price_above": AlertRule(kind="crossing", direction="up", one_shot=True),
    "price_below": AlertRule(kind="crossing", direction="down", one_shot=True),
    "percent_change_up": AlertRule(kind="percent", direction="up", one_shot=False),
    "percent_change_down": AlertRule(kind="percent", direction="down", one_shot=False),
    "percent_change": AlertRule(kind="percent", direction="either", one_shot=False),
}

_registry: dict[str, AlertRule] = dict(BUILTIN_ALERT_TYPES)


def register_alert_type(
    name: str,
    kind: Literal["crossing", "percent"],
    direction: Literal["up", "down", "either"],
    one_shot: bool,
) -> AlertRule:
    """Register an additional alert type.

    Args:
        name: Alert type name as stored in the alert_type column.
        kind: Evaluation kind.
        direction: Direction of the move.
        one_shot: Whether the alert deactivates after firing.

    Returns:
        The registered rule.

    Raises:
        ValueError: If the name is empty, shadows a built-in type, or pairs
            a crossing kind with direction 'either'.
    """
    name = name.strip().lower()
    if not name:
        raise ValueError("Alert type name must not be empty")
    if name in BUILTIN_ALERT_TYPES:
        raise ValueError(f"Cannot redefine built-in alert type '{name}'")
    if kind == "crossing" and direction == "either":
        raise ValueError("Crossing alert types need an up or down direction")
    rule = AlertRule(kind=kind, direction=direction, one_shot=one_shot)
    _registry[name] = rule
    return rule


def unregister_alert_type(name: str) -> None:
    """Remove a previously registered (non built-in) alert type."""
    if name in BUILTIN_ALERT_TYPES:
        raise ValueError(f"Cannot remove built-in alert type '{name}'")
    _registry.pop(name, None)


def get_alert_rule(name: str) -> AlertRule | None:
    """Look up the rule for an alert type, or None if unknown."""
    return _registry.get(name)


def alert_type_names() -> list[str]:
    """All registered alert type names."""
    return sorted(_registry)
