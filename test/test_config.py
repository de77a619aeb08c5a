#!/usr/bin/env python3
"""Tests for the configuration module."""

import logging
import os
import pytest
from unittest.mock import patch

from src.plasma_client.config import (
    ChildChainConfig,
    ConfirmationConfig,
    ExplorerConfig,
    PlasmaConfig,
    RootChainConfig,
    normalize_url,
)

CONTRACT = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
PRIVATE_KEY = "0x" + "ab" * 32


@pytest.fixture
def base_env():
    return {
        "WEB3_PROVIDER_URL": "http://localhost:8545",
        "PLASMA_CONTRACT_ADDRESS": CONTRACT.lower(),
        "WATCHER_URL": "https://watcher.example.com",
    }


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_adds_trailing_slash(self):
        assert normalize_url("https://watcher.example.com") == "https://watcher.example.com/"

    def test_existing_slashes_left_alone(self):
        assert normalize_url("https://watcher.example.com/") == "https://watcher.example.com/"
        assert normalize_url("https://watcher.example.com///") == "https://watcher.example.com///"

    def test_path_kept_intact(self):
        assert normalize_url("https://gateway.example.com/plasma//") == "https://gateway.example.com/plasma//"

    def test_idempotent(self):
        once = normalize_url("http://localhost:7434")
        assert normalize_url(once) == once


class TestRootChainConfig:
    """Tests for RootChainConfig."""

    def test_valid_config(self):
        config = RootChainConfig(rpc_url="http://localhost:8545", plasma_contract_address=CONTRACT)

        assert config.rpc_url == "http://localhost:8545"
        assert config.plasma_contract_address == CONTRACT

    def test_checksum_address_conversion(self):
        config = RootChainConfig(
            rpc_url="https://test.rpc",
            plasma_contract_address=CONTRACT.lower()
        )
        assert config.plasma_contract_address == CONTRACT

    def test_websocket_rpc_url_rejected(self):
        with pytest.raises(ValueError, match="Expected http or https"):
            RootChainConfig(rpc_url="wss://node.example.com", plasma_contract_address=CONTRACT)

    def test_invalid_rpc_url_scheme(self):
        with pytest.raises(ValueError, match="Invalid RPC URL scheme"):
            RootChainConfig(rpc_url="ftp://invalid.scheme", plasma_contract_address=CONTRACT)

    def test_missing_rpc_url(self):
        with pytest.raises(ValueError, match="Root chain RPC URL is required"):
            RootChainConfig(rpc_url="", plasma_contract_address=CONTRACT)

    def test_missing_contract_address(self):
        with pytest.raises(ValueError, match="Plasma contract address is required"):
            RootChainConfig(rpc_url="https://test.rpc", plasma_contract_address="")

    def test_invalid_contract_address(self):
        with pytest.raises(ValueError, match="Invalid plasma contract address"):
            RootChainConfig(rpc_url="https://test.rpc", plasma_contract_address="invalid-address")

    def test_immutable(self):
        config = RootChainConfig(rpc_url="http://localhost:8545", plasma_contract_address=CONTRACT)
        with pytest.raises(AttributeError):
            config.rpc_url = "http://other:8545"


class TestChildChainConfig:
    """Tests for ChildChainConfig."""

    def test_urls_are_normalized(self):
        config = ChildChainConfig(
            watcher_url="https://watcher.example.com",
            child_chain_url="https://childchain.example.com/"
        )

        assert config.watcher_url == "https://watcher.example.com/"
        assert config.child_chain_url == "https://childchain.example.com/"

    def test_child_chain_defaults_to_watcher(self):
        config = ChildChainConfig(watcher_url="http://localhost:7434")
        assert config.child_chain_url == "http://localhost:7434/"

    def test_missing_watcher_url(self):
        with pytest.raises(ValueError, match="Watcher URL"):
            ChildChainConfig(watcher_url="")

    def test_invalid_watcher_scheme(self):
        with pytest.raises(ValueError, match="Invalid Watcher URL"):
            ChildChainConfig(watcher_url="ws://watcher.example.com")


class TestExplorerConfig:
    """Tests for ExplorerConfig."""

    def test_defaults(self):
        config = ExplorerConfig()
        assert config.root_explorer_url == "https://rinkeby.etherscan.io/"
        assert config.child_explorer_url == "http://quest.ari.omg.network/"

    def test_links(self):
        config = ExplorerConfig(
            root_explorer_url="https://etherscan.io",
            child_explorer_url="https://blockexplorer.example.com"
        )

        assert config.root_tx_link("0xabc") == "https://etherscan.io/tx/0xabc"
        assert config.child_tx_link("0xdef") == "https://blockexplorer.example.com/transaction/0xdef"


class TestConfirmationConfig:
    """Tests for ConfirmationConfig."""

    def test_defaults(self):
        config = ConfirmationConfig()
        assert config.poll_interval_ms == 1000
        assert config.blocks_to_wait == 1

    def test_zero_blocks_allowed(self):
        assert ConfirmationConfig(blocks_to_wait=0).blocks_to_wait == 0

    def test_invalid_interval(self):
        with pytest.raises(ValueError, match="Poll interval must be positive"):
            ConfirmationConfig(poll_interval_ms=0)

    def test_negative_blocks(self):
        with pytest.raises(ValueError, match="Confirmation blocks must be non-negative"):
            ConfirmationConfig(blocks_to_wait=-1)


class TestPlasmaConfig:
    """Tests for PlasmaConfig."""

    def _build(self, **kwargs):
        return PlasmaConfig(
            root_chain=RootChainConfig("http://localhost:8545", CONTRACT),
            child_chain=ChildChainConfig("http://localhost:7434"),
            **kwargs
        )

    def test_defaults(self):
        config = self._build()

        assert config.max_inputs == 4
        assert config.exit_bond == 31415926535
        assert config.private_key is None
        assert config.explorer == ExplorerConfig()

    def test_invalid_max_inputs(self):
        with pytest.raises(ValueError, match="Max inputs must be between 1 and 4"):
            self._build(max_inputs=5)
        with pytest.raises(ValueError, match="Max inputs must be between 1 and 4"):
            self._build(max_inputs=0)

    def test_negative_exit_bond(self):
        with pytest.raises(ValueError, match="Exit bond must be non-negative"):
            self._build(exit_bond=-1)

    def test_private_key_with_and_without_prefix(self):
        assert self._build(private_key=PRIVATE_KEY).private_key == PRIVATE_KEY
        assert self._build(private_key=PRIVATE_KEY[2:]).private_key == PRIVATE_KEY[2:]

    def test_invalid_private_key_length(self):
        with pytest.raises(ValueError, match="Invalid private key length"):
            self._build(private_key="0x1234")

    def test_invalid_private_key_format(self):
        with pytest.raises(ValueError, match="Invalid private key format"):
            self._build(private_key="zz" * 32)

    def test_from_env_minimal(self, base_env):
        with patch.dict(os.environ, base_env, clear=True):
            config = PlasmaConfig.from_env()

        assert config.root_chain.rpc_url == "http://localhost:8545"
        assert config.root_chain.plasma_contract_address == CONTRACT
        assert config.child_chain.watcher_url == "https://watcher.example.com/"
        assert config.child_chain.child_chain_url == "https://watcher.example.com/"
        assert config.confirmation == ConfirmationConfig()
        assert config.max_inputs == 4
        assert config.private_key is None

    def test_from_env_full(self, base_env):
        env = {
            **base_env,
            "CHILDCHAIN_URL": "https://childchain.example.com",
            "ROOT_EXPLORER_URL": "https://etherscan.io",
            "CHILD_EXPLORER_URL": "https://explorer.example.com/",
            "POLL_INTERVAL_MS": "250",
            "CONFIRMATION_BLOCKS": "0",
            "MAX_INPUTS": "3",
            "EXIT_BOND": "100",
            "PRIVATE_KEY": PRIVATE_KEY,
        }
        with patch.dict(os.environ, env, clear=True):
            config = PlasmaConfig.from_env()

        assert config.child_chain.child_chain_url == "https://childchain.example.com/"
        assert config.explorer.root_explorer_url == "https://etherscan.io/"
        assert config.explorer.child_explorer_url == "https://explorer.example.com/"
        assert config.confirmation.poll_interval_ms == 250
        assert config.confirmation.blocks_to_wait == 0
        assert config.max_inputs == 3
        assert config.exit_bond == 100
        assert config.private_key == PRIVATE_KEY

    @pytest.mark.parametrize("missing", ["WEB3_PROVIDER_URL", "PLASMA_CONTRACT_ADDRESS", "WATCHER_URL"])
    def test_from_env_missing_required(self, base_env, missing):
        env = {k: v for k, v in base_env.items() if k != missing}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match=missing):
                PlasmaConfig.from_env()

    def test_log_config_hides_private_key(self, caplog):
        config = self._build(private_key=PRIVATE_KEY)

        with caplog.at_level(logging.INFO):
            config.log_config()

        assert "Plasma Client Configuration" in caplog.text
        assert "Private Key: [CONFIGURED]" in caplog.text
        assert PRIVATE_KEY[2:] not in caplog.text

    def test_log_config_without_private_key(self, caplog):
        with caplog.at_level(logging.INFO):
            self._build().log_config()

        assert "Private Key: [NOT SET]" in caplog.text
