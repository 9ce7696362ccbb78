"""Tests for the bitlum command line client."""

import json

import pytest
import yaml
from click.testing import CliRunner

from bitlum import config as cfg
from bitlum.cli import cli
from bitlum.client import Client


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def created(monkeypatch, fake_transport):
    """Replace client construction; records the arguments it was given."""
    calls = []

    def fake_new_client(url, macaroon="", token=""):
        calls.append({"url": url, "macaroon": macaroon, "token": token})
        return Client(fake_transport)

    monkeypatch.setattr("bitlum.cli.new_client", fake_new_client)
    return calls


class TestMarketCommands:
    def test_markets_json(self, runner, created, fake_transport):
        fake_transport.respond({"markets": [{"market": "BTCETH", "last": "0.031"}]})

        result = runner.invoke(cli, ["-t", "jwt", "-o", "json", "markets", "BTCETH"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)[0]["last"] == "0.031"
        assert fake_transport.request.variables.markets == ["BTCETH"]
        assert fake_transport.request.variables.period == 86400

    def test_markets_default_to_supported(self, runner, created, fake_transport):
        fake_transport.respond({"markets": []})

        result = runner.invoke(cli, ["-t", "jwt", "markets"])

        assert result.exit_code == 0, result.output
        assert "No data found." in result.output
        assert fake_transport.request.variables.markets == ["BTCETH", "BTCBCH", "BTCDASH", "BTCLTC"]

    def test_depth_table(self, runner, created, fake_transport):
        fake_transport.respond({
            "depth": {"asks": [{"price": "0.032", "volume": "1"}], "bids": []},
        })

        result = runner.invoke(cli, ["-t", "jwt", "depth", "BTCETH", "--limit", "5"])

        assert result.exit_code == 0, result.output
        assert "0.032" in result.output
        assert fake_transport.request.variables.limit == 5

    def test_exchange_error_exits(self, runner, created, fake_transport):
        fake_transport.respond(errors=[{"message": "market not found"}])

        result = runner.invoke(cli, ["-t", "jwt", "info"])

        assert result.exit_code == 1
        assert "exchange error: market not found" in result.output


class TestAccountCommands:
    def test_partial_result_shown(self, runner, created, fake_transport):
        fake_transport.respond(
            data={"accounts": [{"asset": "BTC", "available": "2"}]},
            errors=[{"message": "asset not found"}],
        )

        result = runner.invoke(cli, ["-t", "jwt", "accounts", "BTC", "XXX"])

        assert result.exit_code == 1
        assert "asset not found" in result.output
        assert "Partial result:" in result.output
        assert '"asset": "BTC"' in result.output

    def test_me_yaml(self, runner, created, fake_transport):
        fake_transport.respond({"me": {"id": "42", "email": "a@b.c"}})

        result = runner.invoke(cli, ["-t", "jwt", "-o", "yaml", "me"])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(result.output) == {"id": "42", "email": "a@b.c"}


class TestOrderCommands:
    def test_create_ask(self, runner, created, fake_transport):
        fake_transport.respond({"createMarketOrder": {"id": 7, "status": "pending"}})

        result = runner.invoke(cli, ["-t", "jwt", "order", "create", "BTCETH", "0.5", "--side", "ask"])

        assert result.exit_code == 0, result.output
        assert "Order placed: 7" in result.output
        assert fake_transport.request.variables.side.value == "ask"
        assert str(fake_transport.request.variables.amount) == "0.5"

    def test_invalid_amount(self, runner, created, fake_transport):
        result = runner.invoke(cli, ["-t", "jwt", "order", "create", "BTCETH", "lots"])

        assert result.exit_code == 2
        assert "is not a valid decimal" in result.output
        assert fake_transport.calls == []


class TestLightningCommands:
    def test_unreachable_exits(self, runner, created, fake_transport):
        fake_transport.respond({"checkReachable": False})

        result = runner.invoke(cli, ["-t", "jwt", "lightning", "reachable", "BTC", "02abc"])

        assert result.exit_code == 1
        assert "is not reachable" in result.output


class TestCredentials:
    def test_missing_credentials(self, runner):
        result = runner.invoke(cli, ["me"])

        assert result.exit_code == 1
        assert "either macaroon or token is required" in result.output

    def test_env_vars(self, runner, created, fake_transport, monkeypatch):
        monkeypatch.setenv("BITLUM_URL", "http://exchange.test/query")
        monkeypatch.setenv("BITLUM_MACAROON", "0201")
        fake_transport.respond({"info": {"network": "simnet"}})

        result = runner.invoke(cli, ["info"])

        assert result.exit_code == 0, result.output
        assert created == [{"url": "http://exchange.test/query", "macaroon": "0201", "token": ""}]

    def test_config_file(self, runner, created, fake_transport):
        cfg.save_config({"url": "http://config.test/query", "token": "from-file"})
        fake_transport.respond({"info": {}})

        result = runner.invoke(cli, ["--token", "from-flag", "info"])

        assert result.exit_code == 0, result.output
        assert created[0]["url"] == "http://config.test/query"
        assert created[0]["token"] == "from-flag"


class TestConfigCommand:
    def test_set_and_show(self, runner):
        result = runner.invoke(cli, ["config", "set", "token", "secret-jwt"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "token: ********" in result.output
        assert "secret-jwt" not in result.output
        assert cfg.load_config() == {"token": "secret-jwt"}

    def test_set_unknown_key(self, runner):
        result = runner.invoke(cli, ["config", "set", "colour", "red"])

        assert result.exit_code == 1
        assert "Unknown config key: colour" in result.output

    def test_show_without_config(self, runner):
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "No configuration file found." in result.output

    def test_user_config_fallback(self):
        user_config = cfg.USER_CONFIG_DIR / "config.yaml"
        cfg.save_config({"url": "http://user.test"}, path=user_config)

        assert cfg.find_config() == user_config
        assert cfg.load_config() == {"url": "http://user.test"}
        assert oct(user_config.stat().st_mode & 0o777) == "0o600"
