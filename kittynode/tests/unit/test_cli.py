"""
Unit tests for the click command line.
"""

import json

import pytest
from click.testing import CliRunner

from kittynode import __version__
from kittynode.cli import cli
from kittynode.commands import utils
from kittynode.commands.core_client import CoreClientManager
from kittynode.commands.errors import ValidationError
from kittynode.commands.package import parse_assignments


@pytest.fixture
def runner(home, driver, monkeypatch):
    monkeypatch.setattr(utils, "CoreClientManager", lambda: CoreClientManager(home, driver))
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_parse_assignments():
    assert parse_assignments(("network=hoodi", " a = b ")) == {"network": "hoodi", "a": "b"}
    with pytest.raises(ValidationError, match="Expected KEY=VALUE, got 'oops'"):
        parse_assignments(("oops",))


class TestConfigCommands:
    def test_capability_roundtrip(self, runner):
        assert runner.invoke(cli, ["config", "add-capability", "ethereum"]).exit_code == 0
        result = runner.invoke(cli, ["config", "capabilities", "--format", "json"])
        assert json.loads(result.output) == ["ethereum"]

        assert runner.invoke(cli, ["config", "remove-capability", "ethereum"]).exit_code == 0
        result = runner.invoke(cli, ["config", "capabilities"])
        assert "No capabilities enabled" in result.output

    def test_server_url(self, runner):
        result = runner.invoke(cli, ["config", "set-server", "https://peer.example"])
        assert result.exit_code == 0
        result = runner.invoke(cli, ["config", "get-server", "--format", "json"])
        assert json.loads(result.output) == {"server_url": "https://peer.example"}

        result = runner.invoke(cli, ["config", "set-server"])
        assert result.exit_code == 0
        assert "local mode" in result.output

    def test_invalid_server_url_fails(self, runner):
        result = runner.invoke(cli, ["config", "set-server", "ftp://peer"])
        assert result.exit_code == 1

    def test_boolean_preferences(self, runner, home):
        result = runner.invoke(cli, ["config", "set-auto-start-docker", "true"])
        assert result.exit_code == 0
        result = runner.invoke(cli, ["config", "show", "--format", "json"])
        assert json.loads(result.output)["auto_start_docker"] is True


class TestPackageCommands:
    def test_catalog_json(self, runner):
        result = runner.invoke(cli, ["package", "catalog", "--format", "json"])
        assert result.exit_code == 0
        assert list(json.loads(result.output)) == ["ethereum"]

    def test_install_requires_network(self, runner, driver):
        result = runner.invoke(cli, ["package", "install", "ethereum"])
        assert result.exit_code == 1
        assert "create_or_recreate_network" not in driver.call_names()

    def test_install_state_delete(self, runner, driver):
        result = runner.invoke(cli, ["package", "install", "ethereum", "--network", "hoodi"])
        assert result.exit_code == 0
        assert "Package 'ethereum' installed" in result.output

        result = runner.invoke(cli, ["package", "state", "ethereum", "--format", "json"])
        assert json.loads(result.output)["install"] == "installed"

        result = runner.invoke(cli, ["package", "delete", "ethereum", "--include-images"])
        assert result.exit_code == 0
        assert "remove_image" in driver.call_names()

    def test_config_set_and_show(self, runner):
        result = runner.invoke(cli, ["package", "config-set", "ethereum", "network=mainnet"])
        assert result.exit_code == 0
        result = runner.invoke(cli, ["package", "config-show", "ethereum"])
        assert "network = mainnet" in result.output

    def test_unknown_package(self, runner):
        assert runner.invoke(cli, ["package", "state", "solana"]).exit_code == 1


class TestDockerCommands:
    def test_status_when_docker_is_down(self, runner, driver):
        driver.reachable = False
        result = runner.invoke(cli, ["docker", "status", "--format", "json"])
        data = json.loads(result.output)
        assert data["docker_running"] is False
        assert data["diagnostics"] == ["Docker is not running locally"]

    def test_start_if_needed(self, runner):
        result = runner.invoke(cli, ["docker", "start-if-needed", "--format", "json"])
        assert json.loads(result.output) == "running"


class TestOtherCommands:
    def test_logs(self, runner):
        result = runner.invoke(cli, ["logs", "reth-node", "--tail", "1"])
        assert result.exit_code == 0
        assert "reth-node line" in result.output

    def test_init_and_reset(self, runner, home):
        assert runner.invoke(cli, ["init"]).exit_code == 0
        assert home.config_path.exists()

        result = runner.invoke(cli, ["reset"], input="n\n")
        assert "Reset cancelled" in result.output
        assert home.base.exists()

        assert runner.invoke(cli, ["reset", "--yes"]).exit_code == 0
        assert not home.base.exists()

    def test_web_status_and_logs(self, runner):
        result = runner.invoke(cli, ["web", "status"])
        assert result.exit_code == 0
        assert "not running" in result.output

        assert runner.invoke(cli, ["web", "logs"]).exit_code == 1

    def test_web_logs_tail(self, runner, home):
        home.web_log_path.parent.mkdir(parents=True)
        home.web_log_path.write_text("first\nsecond\n")

        result = runner.invoke(cli, ["web", "logs", "--tail", "1"])

        assert result.exit_code == 0
        assert result.output == "second\n"

    def test_web_serve_rejects_port_zero(self, runner):
        assert runner.invoke(cli, ["web", "serve", "--port", "0"]).exit_code == 1
