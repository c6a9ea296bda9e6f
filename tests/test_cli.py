"""Tests for the pricealert command line."""

import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner
from hypothesis import given, settings
from hypothesis import strategies as st

from pricealert.cli.alerts import describe_alert, parse_condition
from pricealert.cli.main import cli
from pricealert.db.store import AlertStore
from pricealert.models import PriceAlert


@pytest.fixture
def workspace():
    """A config file pointing at a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        yield root


def write_config(root: Path, price: float) -> Path:
    path = root / "config.toml"
    path.write_text(
        "[database]\n"
        f"path = \"{(root / 'alerts.db').as_posix()}\"\n"
        "\n"
        "[feed.prices]\n"
        f"7203 = {price}\n"
    )
    return path


def invoke(config_path: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config_path), *args])


class TestParseCondition:
    """
    **Feature: price-alert-monitor, Property 14: Condition Parsing**

    *For any* positive value, each supported condition form parses to
    the matching alert type and target.
    """

    @given(value=st.decimals(min_value="0.01", max_value="100000", places=2))
    @settings(max_examples=50)
    def test_condition_forms(self, value):
        target = float(value)
        assert parse_condition(f"price > {value}") == ("price_above", target)
        assert parse_condition(f"price < {value}") == ("price_below", target)
        assert parse_condition(f"change > {value}%") == ("percent_change_up", target)
        assert parse_condition(f"change < -{value}%") == ("percent_change_down", target)
        assert parse_condition(f"price_below {value}") == ("price_below", target)

    @pytest.mark.parametrize(
        "condition",
        ["price = 100", "rsi < 30", "volume_spike 3", "change < 5%", "price > abc", ""],
    )
    def test_unsupported_conditions(self, condition: str):
        assert parse_condition(condition) is None

    def test_describe_alert(self):
        def alert(alert_type, target):
            return PriceAlert(id="a", user_id="1", symbol="7203", alert_type=alert_type, target_value=target)

        assert describe_alert(alert("price_above", 2600)) == "price >= 2,600.00"
        assert describe_alert(alert("price_below", 2500)) == "price <= 2,500.00"
        assert describe_alert(alert("percent_change_up", 5)) == "change +5%"
        assert describe_alert(alert("percent_change_down", 2.5)) == "change -2.5%"
        assert describe_alert(alert("percent_change", 5)) == "change ±5%"
        assert describe_alert(alert("volume_spike", 3)) == "volume_spike 3"


class TestCommands:
    def test_alert_lifecycle(self, workspace: Path):
        config = write_config(workspace, 2500.0)

        result = invoke(config, "alert", "7203", "price > 2600", "-u", "1", "--company", "Toyota")
        assert result.exit_code == 0, result.output
        assert "Alert Created" in result.output

        store = AlertStore(workspace / "alerts.db")
        [alert] = store.get_user_alerts("1")
        assert alert.alert_type == "price_above"
        assert alert.metadata == {"companyName": "Toyota"}

        # First cycle records the baseline below the target
        result = invoke(config, "monitor", "--once")
        assert result.exit_code == 0, result.output
        assert store.get_alert(alert.id).current_value == 2500.0
        assert store.get_triggers() == []

        # Price moves above the target on the next run
        write_config(workspace, 2650.0)
        result = invoke(config, "monitor", "--once")
        assert result.exit_code == 0, result.output
        assert "Price alert: Toyota" in result.output

        [trigger] = store.get_triggers()
        assert trigger.trigger_price == 2650.0
        assert trigger.previous_price == 2500.0
        assert not store.get_alert(alert.id).is_active

        result = invoke(config, "triggers", "-u", "1")
        assert result.exit_code == 0, result.output
        assert "Trigger History" in result.output

        result = invoke(config, "stats", "-u", "1")
        assert result.exit_code == 0, result.output
        assert "Triggered alerts: 1" in result.output

        result = invoke(config, "alerts", "--activate", alert.id)
        assert result.exit_code == 0, result.output
        assert store.get_alert(alert.id).is_active

        result = invoke(config, "alerts", "--remove", alert.id)
        assert result.exit_code == 0, result.output
        assert store.get_alert(alert.id) is None
        assert len(store.get_triggers()) == 1

    def test_invalid_condition_exits(self, workspace: Path):
        result = invoke(write_config(workspace, 1.0), "alert", "7203", "price ~ 5", "-u", "1")

        assert result.exit_code == 1
        assert "Invalid condition" in result.output

    def test_list_without_alerts(self, workspace: Path):
        result = invoke(write_config(workspace, 1.0), "alerts")

        assert result.exit_code == 0
        assert "No alerts set" in result.output

    def test_invalid_config_exits(self, workspace: Path):
        path = workspace / "config.toml"
        path.write_text("[monitor]\ninterval_seconds = -1\n")

        result = invoke(path, "alerts")

        assert result.exit_code == 1
        assert "Configuration Error" in result.output

    def test_init_writes_template(self, workspace: Path):
        path = workspace / "config.toml"

        result = invoke(path, "init")
        assert result.exit_code == 0, result.output
        assert path.exists()

        result = invoke(path, "init")
        assert "already exists" in result.output

    def test_negative_interval_rejected(self, workspace: Path):
        result = invoke(write_config(workspace, 1.0), "monitor", "--once", "--interval", "0")

        assert result.exit_code != 0
