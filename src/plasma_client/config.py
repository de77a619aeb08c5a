#!/usr/bin/env python3
"""Configuration management for the plasma client.

Type-safe, immutable configuration dataclasses with validation. Configuration
is loaded from environment variables with sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from web3 import Web3

from .amount_selector import DEFAULT_MAX_INPUTS
from .root_chain import DEFAULT_EXIT_BOND

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Return url with a trailing slash, adding one only when it is missing."""
    return url if url.endswith("/") else url + "/"


def _validate_http_url(url: str, name: str) -> None:
    if not url:
        raise ValueError(f"{name} is required")
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        raise ValueError(
            f"Invalid {name} scheme: {parsed.scheme}. Expected http or https"
        )


@dataclass(frozen=True, slots=True)
class RootChainConfig:
    """Configuration for the root chain (Ethereum).

    Attributes:
        rpc_url: HTTP(S) RPC endpoint of the root chain node
        plasma_contract_address: Checksummed address of the plasma framework
    """

    rpc_url: str
    plasma_contract_address: str

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ValueError("Root chain RPC URL is required (WEB3_PROVIDER_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. Expected http or https"
            )

        if not self.plasma_contract_address:
            raise ValueError(
                "Plasma contract address is required (PLASMA_CONTRACT_ADDRESS)"
            )

        if not Web3.is_address(self.plasma_contract_address):
            raise ValueError(
                f"Invalid plasma contract address: {self.plasma_contract_address}"
            )

        checksummed = Web3.to_checksum_address(self.plasma_contract_address)
        if checksummed != self.plasma_contract_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'plasma_contract_address', checksummed)


@dataclass(frozen=True, slots=True)
class ChildChainConfig:
    """Configuration for the child chain services.

    Attributes:
        watcher_url: Base URL of the watcher (UTXOs, balances, exit data)
        child_chain_url: Base URL transactions are submitted to; the watcher
            is used when unset
    """

    watcher_url: str
    child_chain_url: str | None = None

    def __post_init__(self) -> None:
        _validate_http_url(self.watcher_url, "Watcher URL (WATCHER_URL)")
        object.__setattr__(self, 'watcher_url', normalize_url(self.watcher_url))

        if self.child_chain_url:
            _validate_http_url(self.child_chain_url, "Child chain URL (CHILDCHAIN_URL)")
            object.__setattr__(self, 'child_chain_url', normalize_url(self.child_chain_url))
        else:
            object.__setattr__(self, 'child_chain_url', self.watcher_url)


@dataclass(frozen=True, slots=True)
class ExplorerConfig:
    """Block explorer base URLs used to build transaction links."""

    root_explorer_url: str = "https://rinkeby.etherscan.io/"
    child_explorer_url: str = "http://quest.ari.omg.network/"

    def __post_init__(self) -> None:
        object.__setattr__(self, 'root_explorer_url', normalize_url(self.root_explorer_url))
        object.__setattr__(self, 'child_explorer_url', normalize_url(self.child_explorer_url))

    def root_tx_link(self, tx_hash: str) -> str:
        return f"{self.root_explorer_url}tx/{tx_hash}"

    def child_tx_link(self, tx_hash: str) -> str:
        return f"{self.child_explorer_url}transaction/{tx_hash}"


@dataclass(frozen=True, slots=True)
class ConfirmationConfig:
    """Root chain confirmation polling settings."""
    poll_interval_ms: int = 1000  # time between receipt checks
    blocks_to_wait: int = 1  # required depth; 0 accepts the first receipt

    def __post_init__(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.poll_interval_ms}")
        if self.blocks_to_wait < 0:
            raise ValueError(f"Confirmation blocks must be non-negative, got {self.blocks_to_wait}")


@dataclass(frozen=True, slots=True)
class PlasmaConfig:
    """Main configuration for the plasma client.

    Attributes:
        root_chain: Root chain node and plasma contract
        child_chain: Watcher and child chain service URLs
        explorer: Explorer URLs for status messages
        confirmation: Confirmation polling settings
        max_inputs: Cap on UTXOs scanned when selecting inputs
        exit_bond: Wei sent along with every standard exit
        private_key: Key of the account (optional when an external signer is used)
    """

    root_chain: RootChainConfig
    child_chain: ChildChainConfig
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)
    confirmation: ConfirmationConfig = field(default_factory=ConfirmationConfig)
    max_inputs: int = DEFAULT_MAX_INPUTS
    exit_bond: int = DEFAULT_EXIT_BOND
    private_key: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.max_inputs <= DEFAULT_MAX_INPUTS:
            raise ValueError(
                f"Max inputs must be between 1 and {DEFAULT_MAX_INPUTS}, got {self.max_inputs}"
            )
        if self.exit_bond < 0:
            raise ValueError(f"Exit bond must be non-negative, got {self.exit_bond}")

        if self.private_key:
            key = self.private_key
            if key.startswith('0x'):
                key = key[2:]

            if len(key) != 64:
                raise ValueError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )

            try:
                int(key, 16)
            except ValueError:
                raise ValueError(
                    "Invalid private key format. Must be hexadecimal"
                ) from None

    @classmethod
    def from_env(cls) -> "PlasmaConfig":
        """Load configuration from environment variables.

        Returns:
            PlasmaConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        rpc_url = os.environ.get("WEB3_PROVIDER_URL", "")
        if not rpc_url:
            raise ValueError(
                "WEB3_PROVIDER_URL environment variable is required. "
                "Example: https://rinkeby.infura.io/"
            )

        contract_address = os.environ.get("PLASMA_CONTRACT_ADDRESS", "")
        if not contract_address:
            raise ValueError(
                "PLASMA_CONTRACT_ADDRESS environment variable is required. "
                "This should be the plasma framework contract on the root chain."
            )

        watcher_url = os.environ.get("WATCHER_URL", "")
        if not watcher_url:
            raise ValueError(
                "WATCHER_URL environment variable is required. "
                "Example: https://watcher.ari.omg.network/"
            )

        explorer_defaults = ExplorerConfig()
        explorer = ExplorerConfig(
            root_explorer_url=os.environ.get(
                "ROOT_EXPLORER_URL", explorer_defaults.root_explorer_url
            ),
            child_explorer_url=os.environ.get(
                "CHILD_EXPLORER_URL", explorer_defaults.child_explorer_url
            )
        )

        confirmation = ConfirmationConfig(
            poll_interval_ms=int(os.environ.get("POLL_INTERVAL_MS", "1000")),
            blocks_to_wait=int(os.environ.get("CONFIRMATION_BLOCKS", "1"))
        )

        return cls(
            root_chain=RootChainConfig(
                rpc_url=rpc_url,
                plasma_contract_address=contract_address
            ),
            child_chain=ChildChainConfig(
                watcher_url=watcher_url,
                child_chain_url=os.environ.get("CHILDCHAIN_URL") or None
            ),
            explorer=explorer,
            confirmation=confirmation,
            max_inputs=int(os.environ.get("MAX_INPUTS", str(DEFAULT_MAX_INPUTS))),
            exit_bond=int(os.environ.get("EXIT_BOND", str(DEFAULT_EXIT_BOND))),
            private_key=os.environ.get("PRIVATE_KEY") or None
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Plasma Client Configuration")
        logger.info("=" * 60)

        logger.info("Root Chain:")
        logger.info(f"  RPC URL: {self.root_chain.rpc_url}")
        logger.info(f"  Plasma Contract: {self.root_chain.plasma_contract_address}")

        logger.info("Child Chain:")
        logger.info(f"  Watcher: {self.child_chain.watcher_url}")
        logger.info(f"  Child Chain: {self.child_chain.child_chain_url}")

        logger.info("Explorers:")
        logger.info(f"  Root: {self.explorer.root_explorer_url}")
        logger.info(f"  Child: {self.explorer.child_explorer_url}")

        logger.info("Confirmation Settings:")
        logger.info(f"  Poll Interval: {self.confirmation.poll_interval_ms} ms")
        logger.info(f"  Blocks To Wait: {self.confirmation.blocks_to_wait}")

        logger.info("Transaction Settings:")
        logger.info(f"  Max Inputs: {self.max_inputs}")
        logger.info(f"  Exit Bond: {self.exit_bond} wei")
        logger.info(f"  Private Key: {'[CONFIGURED]' if self.private_key else '[NOT SET]'}")

        logger.info("=" * 60)
