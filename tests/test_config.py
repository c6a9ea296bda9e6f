"""Tests for configuration loading and component wiring."""

import tempfile
from pathlib import Path

import pytest

from pricealert.config import Config, create_template_config, load_config
from pricealert.errors import ConfigError
from pricealert.factory import build_feed, build_monitor, build_sink, build_store
from pricealert.feeds import HttpPriceFeed, StaticPriceFeed
from pricealert.notifications import ConsoleSink, WebhookSink


@pytest.fixture
def tmpdir_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmpdir_path: Path):
        config = load_config(tmpdir_path / "absent.toml")

        assert config.monitor.interval_seconds == 30.0
        assert config.monitor.fetch_timeout_seconds == 5.0
        assert config.monitor.max_concurrency == 8
        assert config.feed.kind == "static"
        assert config.notifications.kind == "console"
        assert config.alert_types.one_shot is None

    def test_loads_values(self, tmpdir_path: Path):
        path = tmpdir_path / "config.toml"
        path.write_text(
            "[monitor]\n"
            "interval_seconds = 10\n"
            "max_concurrency = 2\n"
            "\n"
            "[database]\n"
            f"path = \"{(tmpdir_path / 'alerts.db').as_posix()}\"\n"
            "\n"
            "[feed]\n"
            "kind = \"static\"\n"
            "\n"
            "[feed.prices]\n"
            "7203 = 2650.5\n"
            "9984 = [100.0, 106.0]\n"
            "\n"
            "[alert_types]\n"
            "one_shot = [\"price_above\"]\n"
        )

        config = load_config(path)

        assert config.monitor.interval_seconds == 10.0
        assert config.monitor.max_concurrency == 2
        assert config.db_path == tmpdir_path / "alerts.db"
        assert config.feed.prices == {"7203": 2650.5, "9984": [100.0, 106.0]}
        assert config.alert_types.one_shot == ["price_above"]

    @pytest.mark.parametrize(
        "content",
        [
            "[monitor]\ninterval_seconds = 0\n",
            "[monitor]\nmax_concurrency = 0\n",
            "[feed]\nkind = \"carrier-pigeon\"\n",
            "[monitor\ninterval_seconds = 5\n",
        ],
    )
    def test_invalid_config_raises(self, tmpdir_path: Path, content: str):
        path = tmpdir_path / "config.toml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_config(path)

    def test_template_loads(self, tmpdir_path: Path):
        path = create_template_config(tmpdir_path / "nested" / "config.toml")

        config = load_config(path)

        assert config.feed.prices == {"7203": 2650.0}
        assert config.alert_types.one_shot == ["price_above", "price_below"]


class TestFactory:
    def test_default_components(self, tmpdir_path: Path):
        config = Config.model_validate({"database": {"path": str(tmpdir_path / "a.db")}})

        assert isinstance(build_feed(config), StaticPriceFeed)
        assert isinstance(build_sink(config), ConsoleSink)
        assert build_store(config).db_path == tmpdir_path / "a.db"

    def test_http_and_webhook_components(self):
        config = Config.model_validate({
            "feed": {"kind": "http", "base_url": "https://quotes.example.com"},
            "notifications": {"kind": "webhook", "webhook_url": "https://hooks.example.com/x"},
        })

        assert isinstance(build_feed(config), HttpPriceFeed)
        assert isinstance(build_sink(config), WebhookSink)

    def test_monitor_uses_configured_settings(self, tmpdir_path: Path):
        config = Config.model_validate({
            "database": {"path": str(tmpdir_path / "a.db")},
            "monitor": {"interval_seconds": 5, "notification_queue_size": 3},
            "alert_types": {"one_shot": ["percent_change_up"]},
        })

        monitor = build_monitor(config)

        assert monitor.settings.interval_seconds == 5.0
        assert monitor.dispatcher.maxsize == 3
        assert monitor.is_one_shot("percent_change_up")
        assert not monitor.is_one_shot("price_above")
