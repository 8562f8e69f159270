# tests/test_settings.py
"""
Settings Tests - Unit Tests for Configuration Loading

Covers required credentials, seed format checks that never echo the value,
network normalization and endpoints, flag overrides, and the CLI's
configuration error path.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- rwabuild.config.settings (Settings, load_settings, parse_flag_overrides)
- rwabuild.app (main, for the configuration error exit code)
- pytest (testing framework)
"""
import json

import pytest  # Testing framework for writing and running tests

from pydantic import ValidationError as SchemaError
from xrpl.wallet import Wallet

from rwabuild.app import EXIT_USAGE, main
from rwabuild.config.settings import NETWORK_ENDPOINTS, load_settings, parse_flag_overrides

ENV_KEYS = ["XRPL_PRIVATE_KEY", "XRPL_ISSUER_SEED", "XRPL_NETWORK", "XRPL_ENDPOINT", "LOG_LEVEL"]


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Isolated environment: no inherited settings and no .env file in the working directory."""
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def seed():
    return Wallet.create().seed


class TestLoadSettings:
    def test_missing_operator_key(self, env):
        with pytest.raises(SchemaError) as exc:
            load_settings()
        assert any(e["loc"] == ("XRPL_PRIVATE_KEY",) for e in exc.value.errors())

    def test_malformed_seed_not_echoed(self, env):
        env.setenv("XRPL_PRIVATE_KEY", "not-a-seed-value")
        with pytest.raises(SchemaError) as exc:
            load_settings()
        messages = [e["msg"] for e in exc.value.errors()]
        assert any("Invalid seed format" in m for m in messages)
        assert not any("not-a-seed-value" in m for m in messages)

    def test_defaults(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        settings = load_settings()
        assert settings.xrpl_network == "testnet"
        assert settings.xrpl_issuer_seed is None
        assert settings.websocket_url == NETWORK_ENDPOINTS["testnet"]["websocket"]
        assert settings.rpc_url == NETWORK_ENDPOINTS["testnet"]["rpc"]

    def test_network_is_normalized(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        env.setenv("XRPL_NETWORK", " DevNet ")
        settings = load_settings()
        assert settings.xrpl_network == "devnet"
        assert settings.websocket_url == "wss://s.devnet.rippletest.net:51233"

    def test_unknown_network(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        env.setenv("XRPL_NETWORK", "betanet")
        with pytest.raises(SchemaError):
            load_settings()

    def test_endpoint_override(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        env.setenv("XRPL_ENDPOINT", "wss://node.example.com")
        assert load_settings().ledger_config().endpoint == "wss://node.example.com"

    def test_flag_overrides_take_precedence(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        env.setenv("XRPL_NETWORK", "testnet")
        settings = load_settings(parse_flag_overrides(["--xrpl-network=mainnet", "--unknown=1"]))
        assert settings.xrpl_network == "mainnet"

    def test_log_level_validated(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        env.setenv("LOG_LEVEL", "debug")
        assert load_settings().log_level == "DEBUG"
        env.setenv("LOG_LEVEL", "chatty")
        with pytest.raises(SchemaError):
            load_settings()


class TestLedgerConfig:
    def test_repr_hides_credentials(self, env, seed):
        env.setenv("XRPL_PRIVATE_KEY", seed)
        config = load_settings().ledger_config()
        assert seed not in repr(config)
        assert seed not in str(config.credential)
        assert config.credential.get_secret_value() == seed


class TestParseFlagOverrides:
    def test_parses_name_value_flags(self):
        assert parse_flag_overrides(["rwa_get_portfolio", "--log-level=debug", "--xrpl_endpoint=wss://x"]) == {
            "log_level": "debug",
            "xrpl_endpoint": "wss://x",
        }

    def test_ignores_bare_flags(self):
        assert parse_flag_overrides(["--verbose", "list"]) == {}


class TestCommandLine:
    def test_configuration_error_exit_code(self, env, capsys):
        assert main(["rwa_get_wallet_info"]) == EXIT_USAGE
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "error"
        assert output["error"]["kind"] == "ConfigurationError"

    def test_bad_seed_never_printed(self, env, capsys):
        env.setenv("XRPL_PRIVATE_KEY", "sBadSeedValue")
        assert main(["rwa_get_wallet_info"]) == EXIT_USAGE
        assert "sBadSeedValue" not in capsys.readouterr().out

    def test_list_needs_no_settings(self, env, capsys):
        assert main(["list"]) == 0
        names = [t["name"] for t in json.loads(capsys.readouterr().out)["tools"]]
        assert "rwa_get_portfolio" in names

    def test_no_command(self, env, capsys):
        assert main([]) == EXIT_USAGE
