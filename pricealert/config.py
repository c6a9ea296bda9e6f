"""Configuration loading for pricealert.

Settings live in a TOML file (``~/.config/pricealert/config.toml`` by
default) and are validated into pydantic models.
"""

from pathlib import Path
from typing import Literal, Optional, Union

import toml
from pydantic import BaseModel, Field, ValidationError

from pricealert.errors import ConfigError

CONFIG_DIR = Path.home() / ".config" / "pricealert"
CONFIG_PATH = CONFIG_DIR / "config.toml"


class MonitorSettings(BaseModel):
    """Polling cycle tunables."""

    interval_seconds: float = Field(default=30.0, gt=0, description="Seconds between cycles")
    fetch_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Timeout for one price fetch"
    )
    max_concurrency: int = Field(default=8, ge=1, description="Concurrent symbol workers")
    notification_queue_size: int = Field(
        default=1000, ge=1, description="Capacity of the notification queue"
    )


class DatabaseSettings(BaseModel):
    path: Path = Field(default=CONFIG_DIR / "pricealert.db", description="SQLite file")


class FeedSettings(BaseModel):
    kind: Literal["static", "http"] = Field(default="static", description="Feed implementation")
    base_url: str = Field(default="", description="HTTP feed endpoint prefix")
    price_field: str = Field(default="price", description="JSON key of the latest price")
    previous_field: str = Field(
        default="previousClose", description="JSON key of the previous reference price"
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")
    prices: dict[str, Union[float, list[float]]] = Field(
        default_factory=dict, description="Static feed prices by symbol"
    )


class NotificationSettings(BaseModel):
    kind: Literal["console", "webhook"] = Field(default="console", description="Sink")
    webhook_url: str = Field(default="", description="Webhook endpoint")


class AlertTypeSettings(BaseModel):
    one_shot: Optional[list[str]] = Field(
        default=None,
        description="Alert types that deactivate after firing; None uses each type's default",
    )


class Config(BaseModel):
    """Top-level configuration."""

    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    alert_types: AlertTypeSettings = Field(default_factory=AlertTypeSettings)

    @property
    def db_path(self) -> Path:
        return self.database.path.expanduser()


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from a TOML file.

    A missing file yields the default configuration.

    Args:
        path: Config file path, defaults to ``~/.config/pricealert/config.toml``.

    Returns:
        Validated configuration.

    Raises:
        ConfigError: If the file cannot be parsed or fails validation.
    """
    config_path = path or CONFIG_PATH
    if not config_path.exists():
        return Config()

    try:
        data = toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e


def create_template_config(path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Args:
        path: Destination, defaults to ``~/.config/pricealert/config.toml``.

    Returns:
        Path of the written file.
    """
    config_path = path or CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "monitor": {
            "interval_seconds": 30.0,
            "fetch_timeout_seconds": 5.0,
            "max_concurrency": 8,
            "notification_queue_size": 1000,
        },
        "database": {
            "path": str(CONFIG_DIR / "pricealert.db"),
        },
        "feed": {
            "kind": "static",  # static or http
            "base_url": "",
            "price_field": "price",
            "previous_field": "previousClose",
            "prices": {"7203": 2650.0},
        },
        "notifications": {
            "kind": "console",  # console or webhook
            "webhook_url": "",
        },
        "alert_types": {
            "one_shot": ["price_above", "price_below"],
        },
    }

    with open(config_path, "w") as f:
        toml.dump(template, f)

    return config_path
