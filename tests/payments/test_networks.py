"""Tests for per-request network configuration resolution."""

import pytest
from pydantic import ValidationError

from paygate.config import Settings
from paygate.payments.networks import (
    DEFAULT_EXPLORER_BASE_URL,
    DEFAULT_RPC_URL,
    NETWORK_CONFIGS,
    NetworkConfig,
    PaymentConfig,
    TokenType,
    build_payment_defaults,
    network_key_from_request,
    resolve_network_config,
    resolve_request_config,
)

RECIPIENT = "0x49e0329808559a9aa742a3cf01cec9b773a53834"

DEVNET = NetworkConfig(
    network="devnet",
    rpc_url="http://localhost:8545",
    explorer_base_url="http://localhost:4000/tx",
    decimals=6,
    token_type=TokenType.native,
)


@pytest.fixture
def networks():
    return {**NETWORK_CONFIGS, "devnet": DEVNET}


class TestNetworkConfigs:
    """Tests for the static network table."""

    def test_pharos_testnet_exists(self):
        config = NETWORK_CONFIGS["pharos-testnet"]
        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.explorer_base_url == DEFAULT_EXPLORER_BASE_URL
        assert config.decimals == 18
        assert config.token_type is TokenType.native

    def test_entries_are_immutable(self):
        with pytest.raises(ValidationError):
            NETWORK_CONFIGS["pharos-testnet"].decimals = 6

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValidationError):
            PaymentConfig(decimals=-1)


class TestResolveNetworkConfig:
    """Lookup order and overlay rules."""

    def test_known_network(self, networks):
        settings = Settings(_env_file=None, recipient=RECIPIENT, expires_seconds=120)
        config = resolve_network_config("devnet", settings=settings, networks=networks)

        assert config.network == "devnet"
        assert config.rpc_url == "http://localhost:8545"
        assert config.explorer_base_url == "http://localhost:4000/tx"
        assert config.decimals == 6
        assert config.recipient == RECIPIENT
        assert config.expires_in_seconds == 120

    def test_unknown_network_uses_default_entry(self, settings, networks):
        config = resolve_network_config("nope", settings=settings, networks=networks)

        assert config.network == "pharos-testnet"
        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.recipient == RECIPIENT

    def test_missing_key_uses_default_entry(self, settings):
        config = resolve_network_config(None, settings=settings)
        assert config.network == "pharos-testnet"
        assert config.decimals == 18

    def test_configured_default_network(self, networks):
        settings = Settings(_env_file=None, network="devnet", recipient=RECIPIENT)
        config = resolve_network_config("nope", settings=settings, networks=networks)
        assert config.network == "devnet"
        assert config.decimals == 6

    def test_falls_back_to_literals_when_default_unknown(self):
        settings = Settings(_env_file=None, network="ghost", recipient=RECIPIENT)
        config = resolve_network_config("also-ghost", settings=settings, networks={})

        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.explorer_base_url == DEFAULT_EXPLORER_BASE_URL
        assert config.decimals == 18
        assert config.token_type is TokenType.native

    def test_network_entry_does_not_override_recipient(self, networks):
        settings = Settings(_env_file=None, recipient="0xDEF")
        config = resolve_network_config("devnet", settings=settings, networks=networks)
        assert config.recipient == "0xDEF"

    def test_uses_environment_settings_by_default(self, monkeypatch):
        monkeypatch.setenv("X402_RECIPIENT", "0xfromenv")
        monkeypatch.setenv("X402_EXPIRES_SECONDS", "60")
        config = resolve_network_config("pharos-testnet")
        assert config.recipient == "0xfromenv"
        assert config.expires_in_seconds == 60


class TestBuildPaymentDefaults:
    """Process-wide defaults."""

    def test_explicit_overrides_win(self):
        config = build_payment_defaults(
            network="pharos-testnet",
            recipient=RECIPIENT,
            rpc_url="http://rpc.example",
            explorer_base_url="http://explorer.example/tx",
            decimals=9,
        )
        assert config.rpc_url == "http://rpc.example"
        assert config.explorer_base_url == "http://explorer.example/tx"
        assert config.decimals == 9

    def test_zero_decimals_override_is_kept(self):
        config = build_payment_defaults(network="pharos-testnet", decimals=0)
        assert config.decimals == 0

    def test_explorer_url(self, payment_config):
        assert payment_config.explorer_url("0xabc") == f"{DEFAULT_EXPLORER_BASE_URL}/0xabc"


class TestRequestNetworkKey:
    """Picking the network key from request data."""

    def test_header_wins_over_body(self):
        key = network_key_from_request({"x-pharos-network": "devnet"}, {"network": "other"})
        assert key == "devnet"

    def test_header_name_is_case_insensitive(self):
        assert network_key_from_request({"X-Pharos-Network": "devnet"}) == "devnet"

    def test_body_field(self):
        assert network_key_from_request({}, {"network": "devnet"}) == "devnet"

    def test_nothing_supplied(self):
        assert network_key_from_request(None, None) is None
        assert network_key_from_request({"x-pharos-network": ""}, {"network": ""}) is None

    def test_resolve_request_config(self, settings):
        config = resolve_request_config({"x-pharos-network": "pharos-testnet"}, settings=settings)
        assert config.network == "pharos-testnet"
        assert config.recipient == RECIPIENT
