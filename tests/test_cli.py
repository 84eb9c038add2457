"""
Tests for the command-line interface.
"""

import json
import os

import pytest
from typer.testing import CliRunner

from rdash import config as config_module
from rdash.cli import app

from conftest import monthly_feed

runner = CliRunner()


@pytest.fixture
def feed_file(tmp_path):
    feed = monthly_feed("Widget", [("2024-01", 10), ("2024-02", 20), ("2024-03", 30), ("2024-04", 40)])
    path = tmp_path / "orders.json"
    path.write_text(json.dumps(feed), encoding="utf-8")
    return str(path)


@pytest.fixture
def restore_config():
    """Undo environment changes made by an env file and rebuild the configuration."""
    saved = os.environ.get("RDASH_DATA_URL")
    yield
    if saved is None:
        os.environ.pop("RDASH_DATA_URL", None)
    else:
        os.environ["RDASH_DATA_URL"] = saved
    config_module.reload_config()


class TestCLI:
    """Test cases for CLI commands."""

    def test_version(self):
        """Test the version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Retail Dashboard v" in result.output

    def test_load(self, feed_file):
        """Test loading a feed file."""
        result = runner.invoke(app, ["load", "--source", feed_file])
        assert result.exit_code == 0
        assert "Load Results" in result.output

    def test_env_file(self, feed_file, tmp_path, restore_config):
        """Test that settings from an env file are applied before the command runs."""
        env_path = tmp_path / "rdash.env"
        env_path.write_text(f"RDASH_DATA_URL={feed_file}\n", encoding="utf-8")

        result = runner.invoke(app, ["--env-file", str(env_path), "load"])

        assert result.exit_code == 0
        assert config_module.get_config().data.data_url == feed_file
        assert "Load Results" in result.output

    def test_load_missing_file(self, tmp_path):
        """Test that load errors exit with status 1."""
        result = runner.invoke(app, ["load", "--source", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    def test_forecast(self, feed_file):
        """Test forecasting a product."""
        result = runner.invoke(app, ["forecast", "Widget", "--model", "holt", "--source", feed_file])
        assert result.exit_code == 0
        assert "50 units" in result.output

    def test_forecast_unknown_product(self, feed_file):
        """Test that unknown products exit with status 1."""
        result = runner.invoke(app, ["forecast", "Nothing", "--source", feed_file])
        assert result.exit_code == 1

    def test_backtest(self, feed_file):
        """Test model comparison."""
        result = runner.invoke(app, ["backtest", "Widget", "--source", feed_file])
        assert result.exit_code == 0
        assert "Best model by MAPE" in result.output
