"""Tests for CLI interface"""

from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from printpay.cli import _die, cli, setup_logging
from printpay.infrastructure.config.config_manager import ENV_OVERRIDES


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Run the CLI without a config file or configuration from the environment"""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _json_output(result) -> dict:
    # log lines may precede the JSON document
    output = result.stdout
    return json.loads(output[output.index("{") :])


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        """Test that logging is set to INFO level by default"""
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_setup_logging_debug_level(self):
        """Test that logging is set to DEBUG level when verbose"""
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.DEBUG


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception_verbose(self):
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestQuoteCommand:
    """Tests for the quote command"""

    def test_quote_default_network(self, isolated_env):
        result = CliRunner().invoke(cli, ["quote", "$20.00"], obj={})

        assert result.exit_code == 0, result.output
        body = _json_output(result)
        assert body["x402Version"] == 1
        requirement = body["accepts"][0]
        assert requirement["maxAmountRequired"] == "20000000"
        assert requirement["network"] == "base"
        assert requirement["scheme"] == "exact"
        assert requirement["resource"] == "http://localhost:8000/api/shirts"

    def test_quote_other_network(self, isolated_env):
        result = CliRunner().invoke(cli, ["quote", "0.5", "--network", "base-sepolia"], obj={})

        assert result.exit_code == 0, result.output
        requirement = _json_output(result)["accepts"][0]
        assert requirement["maxAmountRequired"] == "500000"
        assert requirement["asset"] == "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

    def test_quote_invalid_price(self, isolated_env):
        result = CliRunner().invoke(cli, ["quote", "twenty"], obj={})

        assert result.exit_code != 0
        assert "Invalid price format" in result.output

    def test_quote_unknown_network_rejected(self, isolated_env):
        result = CliRunner().invoke(cli, ["quote", "$1", "--network", "dogecoin"], obj={})
        assert result.exit_code == 2


class TestConfigCommand:
    """Tests for the config command"""

    def test_secrets_are_masked(self, isolated_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-very-secret")
        monkeypatch.setenv("PRINTIFY_SHOP_ID", "424242")

        result = CliRunner().invoke(cli, ["config"], obj={})

        assert result.exit_code == 0, result.output
        assert "# Source: defaults + environment" in result.stdout
        assert "sk-very-secret" not in result.output
        body = _json_output(result)
        assert body["image"]["api_key"] == "***"
        assert body["fulfillment"]["shop_id"] == "424242"
        assert body["payout"]["private_key"] is None

    def test_config_file(self, isolated_env):
        config_file = isolated_env / "custom.yml"
        config_file.write_text("payment:\n  network: polygon\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["--config", str(config_file), "config"], obj={})

        assert result.exit_code == 0, result.output
        assert f"# Source: {config_file}" in result.stdout
        assert _json_output(result)["payment"]["network"] == "polygon"

    def test_invalid_config_file(self, isolated_env):
        config_file = isolated_env / "bad.yml"
        config_file.write_text("server:\n  port: 0\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["--config", str(config_file), "config"], obj={})

        assert result.exit_code != 0
        assert "Configuration validation failed" in result.output
        assert "server.port" in result.output


class TestServeCommand:
    """Tests for the serve command"""

    def test_serve_uses_config_and_overrides(self, isolated_env):
        app = MagicMock()
        with patch("printpay.api.app.create_app", return_value=app) as create_app, patch("uvicorn.run") as run:
            result = CliRunner().invoke(cli, ["serve", "--port", "9000", "--facilitator", "mock"], obj={})

        assert result.exit_code == 0, result.output
        config_manager = create_app.call_args.args[0]
        assert config_manager.get_payment_config().facilitator == "mock"
        run.assert_called_once_with(app, host="127.0.0.1", port=9000, log_level="info")

    def test_serve_reports_configuration_errors(self, isolated_env):
        from printpay.domain.errors import ConfigurationError

        with patch("printpay.api.app.create_app", side_effect=ConfigurationError("boom")), patch(
            "uvicorn.run"
        ) as run:
            result = CliRunner().invoke(cli, ["serve"], obj={})

        assert result.exit_code == 1
        assert "boom" in result.output
        run.assert_not_called()
