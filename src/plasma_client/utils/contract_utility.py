import json
import logging
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.middleware import SignAndSendRawMiddlewareBuilder

logger = logging.getLogger(__name__)


class ContractUtility:
    """
    Root chain connection shared by the contract clients.

    Holds the Web3 instance and the ABIs bundled under contracts/. Transactions
    are signed in one of two ways:
    1. Key mode: a private key is given and transactions are signed locally
    2. Node mode: no key; the node (or the wallet behind the provider) signs
       for its unlocked accounts
    """

    ABI_DIR: Path = Path(__file__).resolve().parent.parent / "contracts"

    def __init__(self, rpc_url: str, secret: str = "", timeout: int = 30) -> None:
        """
        Connect to the root chain.

        Args:
            rpc_url: HTTP(S) endpoint of the root chain node
            secret: Private key for signing transactions (optional)
            timeout: Request timeout in seconds
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))
        self.account: LocalAccount | None = None

        if secret:
            self.account = Account.from_key(secret)
            self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self.account))
            self.w3.eth.default_account = self.account.address
            logger.info(f"Signing root chain transactions as {self.account.address}")
        else:
            logger.info("No private key configured; the node signs transactions")

    def get_contract_abi(self, contract_name: str) -> list[dict[str, Any]]:
        """Load the ABI of a bundled contract.

        Raises:
            FileNotFoundError: If no ABI with that name is bundled
        """
        with (self.ABI_DIR / f"{contract_name}.json").open() as file:
            contract_data: dict[str, Any] = json.load(file)
        return contract_data["abi"]

    def get_contract(self, contract_name: str, address: str) -> Contract:
        """Bind a bundled ABI to a deployed address."""
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=self.get_contract_abi(contract_name)
        )
